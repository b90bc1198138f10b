from fastapi import Depends
from .models.user_model import User
from .security import current_active_user


async def current_admin(user: User = Depends(current_active_user)) -> User:
    # Every account is an admin; ownership of a test is checked in the services
    return user
