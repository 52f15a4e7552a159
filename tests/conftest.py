"""Shared fixtures for the server and client tests."""

import textwrap

import pytest


@pytest.fixture()
def server_config(tmp_path):
    """Return a factory writing a server configuration under tmp_path.

    The factory returns (config_path, storage_dir).
    """

    def write(max_upload_size="1K"):
        storage_dir = tmp_path / "data-server"
        config = textwrap.dedent(
            f"""
            server:
              addr: "127.0.0.1"
              port: 18081
            storage:
              uploadedFilesPath: "{storage_dir.as_posix()}"
              maxUploadSize: "{max_upload_size}"
            logging:
              json: false
              file: ""
              level: "INFO"
            """
        )
        config_path = tmp_path / "fsserver.yaml"
        config_path.write_text(config, encoding="utf-8")
        return config_path, storage_dir

    return write
