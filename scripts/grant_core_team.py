# grant_core_team.py
import argparse
import logging
import sys
import os

# Хак для корректной работы импортов
sys.path.append(os.getcwd())

from app.core.logging_config import setup_logging
from app.crud import core_team as crud_core_team
from app.crud import user as crud_user
from app.dependencies import get_db_context

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """
    Выдает или забирает статус core team.
    Пример: python scripts/grant_core_team.py 42
            python scripts/grant_core_team.py 42 --revoke
    """
    parser = argparse.ArgumentParser(description="Grant or revoke core team membership.")
    parser.add_argument("user_id", type=int)
    parser.add_argument("--revoke", action="store_true")
    args = parser.parse_args(argv)

    with get_db_context() as db:
        user = crud_user.get_user_by_id(db, args.user_id)
        if not user:
            logger.error(f"User {args.user_id} not found.")
            return 1

        if args.revoke:
            removed = crud_core_team.remove_core_team_member(db, user.id)
            logger.info(f"User {user.id} core team membership {'revoked' if removed else 'was not set'}.")
        else:
            crud_core_team.add_core_team_member(db, user.id)
            logger.info(f"User {user.id} is now a core team member.")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
