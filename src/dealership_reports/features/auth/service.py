"""Business logic for authentication: looking users up and tracking logins."""
from datetime import datetime, timezone
from typing import Optional
from . import models

async def get_user_by_username(username: str) -> Optional[models.User]:
    """Retrieves a user by their username.

    Args:
        username: The username of the user to retrieve.

    Returns:
        The User object if found, otherwise None.
    """
    return await models.User.get_or_none(username=username)

def is_locked(user: models.User, now: Optional[datetime] = None) -> bool:
    """Whether the account is still inside its lockout window."""
    if user.account_locked_until is None:
        return False
    now = now or datetime.now(timezone.utc)
    locked_until = user.account_locked_until
    if locked_until.tzinfo is None:
        locked_until = locked_until.replace(tzinfo=timezone.utc)
    return locked_until > now

async def record_login(user: models.User) -> models.User:
    """Stamps a successful login on the user record.

    The login-pattern reports read ``last_login``, ``is_first_login`` and
    ``login_attempts``, so a successful login resets the failed attempt
    counter and clears the first-login flag.
    """
    user.last_login = datetime.now(timezone.utc)
    user.is_first_login = False
    user.login_attempts = 0
    await user.save()
    return user

async def record_failed_login(user: models.User) -> models.User:
    user.login_attempts += 1
    await user.save()
    return user
