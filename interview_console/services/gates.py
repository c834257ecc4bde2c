# interview_console/services/gates.py
# UI gates only: the passwords are static strings checked client side.
from typing import Optional

from interview_console.config import Settings, get_settings


def check_user_password(password: str, settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return bool(password and password.strip()) and password == settings.user_password


def check_admin_password(password: str, settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return bool(password) and password == settings.admin_password
