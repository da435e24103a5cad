# Import all models to ensure they are registered with SQLModel
from blogapi.models import user, blog

__all__ = [
    "user",
    "blog",
]
