"""
Tubely Backend Application Package

This package contains the Tubely FastAPI application: authenticated users
upload thumbnails and MP4 videos for their video records, the server
validates and normalizes them, places them (inline, in memory, or in an S3
bucket) and writes the resulting location back to MongoDB.

Package Structure:
- api/: REST endpoints and dependency providers
- core/: Infrastructure (auth, database, storage, errors)
- models/: Pydantic data models
- services/: Upload flow steps and business logic
- utils/: Logging and upload validation helpers
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
