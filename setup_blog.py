# -*- coding: utf-8 -*-
"""
setup_blog.py: first-time setup of the blog database.

- creates the missing tables;
- inserts one empty post per day, from --start for --days days (existing dates are kept);
- creates the "admin" account with a random password and prints it once.

python setup_blog.py                       → uses SETUP_START / SETUP_DAYS from the config
python setup_blog.py --start 2024-12-01 --days 24
"""

import argparse
import secrets
from datetime import date, timedelta

from werkzeug.security import generate_password_hash

from extensions import db
from models import ADMIN_NAME, Post, User

PASSWORD_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!$%&/()=?+#"
PASSWORD_LENGTH = 20


def populate_posts(start: date, days: int) -> int:
    """Insert a post for every day of the range that has none yet; returns how many."""
    if days <= 0:
        raise ValueError("days must be positive")

    wanted = [start + timedelta(days=offset) for offset in range(days)]
    existing = {d for (d,) in db.session.query(Post.date).filter(Post.date.in_(wanted))}

    created = 0
    for day in wanted:
        if day not in existing:
            db.session.add(Post(date=day, content=""))
            created += 1
    db.session.commit()
    return created


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_CHARS) for _ in range(length))


def create_admin(password: str | None = None) -> str | None:
    """Create the "admin" account; returns its password, or None if it already exists."""
    if User.query.filter_by(name=ADMIN_NAME).first() is not None:
        return None

    password = password or generate_password()
    db.session.add(User(name=ADMIN_NAME, password=generate_password_hash(password), admin=True))
    db.session.commit()
    return password


def main(argv=None) -> None:
    from app import create_app

    app = create_app()

    parser = argparse.ArgumentParser(description="Set up the blog database.")
    parser.add_argument("--start", type=date.fromisoformat,
                        default=date.fromisoformat(app.config["SETUP_START"]),
                        help="first post date (YYYY-MM-DD)")
    parser.add_argument("--days", type=int, default=app.config["SETUP_DAYS"], help="number of daily posts")
    args = parser.parse_args(argv)

    with app.app_context():
        db.create_all()
        created = populate_posts(args.start, args.days)
        print(f"Posts: {created} created for {args.start} + {args.days} days")

        password = create_admin()
        if password is None:
            print(f"User '{ADMIN_NAME}' already exists, password unchanged.")
        else:
            print(f"admin-user is: '{ADMIN_NAME}' '{password}'")


if __name__ == "__main__":
    main()
