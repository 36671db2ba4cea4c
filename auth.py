import secrets
from typing import Optional

import config


def is_admin(supplied_secret: Optional[str]) -> bool:
    if not supplied_secret or not config.ADMIN_OVERRIDE_TOKEN:
        return False
    return secrets.compare_digest(supplied_secret.encode(), config.ADMIN_OVERRIDE_TOKEN.encode())


# Owner secret or admin override; every secret comparison goes through here
def authorize(stored_secret: Optional[str], supplied_secret: Optional[str]) -> bool:
    if not supplied_secret:
        return False
    if stored_secret and secrets.compare_digest(supplied_secret.encode(), stored_secret.encode()):
        return True
    return is_admin(supplied_secret)
