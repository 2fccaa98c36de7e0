"""
Models Package for Tubely.

Example Usage:
    ```python
    from app.models import Orientation, Video, VideoCreate

    video = Video(user_id="7c9e6679-7425-40de-944b-e07fc1f90ae7", title="Boots")
    ```
"""

from app.models.video import Orientation, Video, VideoCreate, VideoResponse


__all__ = ["Orientation", "Video", "VideoCreate", "VideoResponse"]
