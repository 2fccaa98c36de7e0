"""
Core infrastructure for the Tubely backend.

- auth: bearer-token identity check
- database: MongoDB async client (Motor) and the video repository
- errors: request error taxonomy and exception handlers
- storage: S3-compatible storage client for MinIO/AWS S3
"""
