from typing import Optional

from sqlalchemy.engine import Engine

from steam_openid.models import Base


def create_all(bind: Optional[Engine] = None) -> None:
    if bind is None:
        from steam_openid.db import engine as bind
    Base.metadata.create_all(bind=bind)
