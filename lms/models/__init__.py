"""
Models package initialization
Import all models and setup relationships
"""

from .chapter import Chapter
from .course import Course
from .enrollment import Enrollment

# Import and setup relationships
from .relations import setup_relationships
from .user import User
from .video import Video

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "Chapter",
    "Course",
    "Enrollment",
    "User",
    "Video",
]
