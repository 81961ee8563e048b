from .admin import router as admin_router
from .auth import router as auth_router
from .course import router as course_router
from .enrollment import router as enrollment_router
from .user import router as user_router

routes = [
    admin_router,
    auth_router,
    user_router,
    course_router,
    enrollment_router,
]
