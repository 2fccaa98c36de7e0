"""
Business logic for the Tubely upload flows.

- intake_service: multipart parsing and temporary files
- media_service: ffprobe/ffmpeg inspection and normalization
- placement_service: inline, registry and object-storage placement
- thumbnail_registry: in-memory thumbnail table
- upload_service: the thumbnail and video upload flows
- video_service: ownership gate, persistence sync and record routes
"""
