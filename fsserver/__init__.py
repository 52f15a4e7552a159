"""
fsserver: HTTP file storage server
Built with FastAPI + Uvicorn
"""

__version__ = "1.0.0"
__description__ = "Upload, list and delete named files over HTTP"
