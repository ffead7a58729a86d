#!/usr/bin/env python3
"""
Назначить роль пользователю напрямую в БД (например, первого админа).
Запуск из корня проекта: python -m scripts.set_user_role <user_id> admin
или: PYTHONPATH=. python scripts/set_user_role.py <user_id> vip --duration month
"""
import argparse
import os
import sys

# корень проекта в PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.session import session_scope
from app.services.errors import AdminInputError
from app.services.users.service import ROLE_DURATION_TYPES, UserService
from app.utils.time import utcnow


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Set a user's role (user | vip | admin).")
    parser.add_argument("user_id", help="identity provider user id")
    parser.add_argument("role", help="user | vip | admin")
    parser.add_argument("--duration", default="permanent", choices=ROLE_DURATION_TYPES)
    parser.add_argument("--days", type=int, default=None, help="for --duration custom_days")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    with session_scope() as db:
        svc = UserService(db)
        user = svc.get(args.user_id)
        if user is None:
            print(f"Пользователь {args.user_id} не найден.")
            return 1
        try:
            user = svc.set_role(
                user,
                args.role,
                args.duration,
                utcnow(),
                custom_days=args.days,
                actor_id="cli",
            )
        except AdminInputError as e:
            print(f"Ошибка: {e}")
            return 2
        expires = user.role_expiration.isoformat() if user.role_expiration else "бессрочно"
        print(f"{user.id}: роль {user.role} ({expires})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
