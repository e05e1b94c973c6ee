from werkzeug.security import generate_password_hash

from extensions import db
from models import ADMIN_NAME, User


def create_user(username, password, admin=False):
    """Create an account; returns the new user or None when the name is unavailable."""
    if username == ADMIN_NAME:
        print(f"⚠️  '{ADMIN_NAME}' is reserved, run setup_blog.py to create it.")
        return None

    # unique login names
    existing_user = User.query.filter_by(name=username).first()
    if existing_user:
        print(f"⚠️  User '{username}' already exists (admin: {existing_user.admin}).")
        return None

    user = User(
        name=username,
        password=generate_password_hash(password),
        admin=admin
    )
    db.session.add(user)
    db.session.commit()
    print(f"✅ Created user: {username} (admin: {admin})")
    return user


if __name__ == '__main__':
    import argparse

    from app import create_app

    parser = argparse.ArgumentParser(description='Create a new user.')
    parser.add_argument('username', help='Username')
    parser.add_argument('password', help='Password')
    parser.add_argument('--admin', action='store_true', help='Grant admin rights')

    args = parser.parse_args()
    with create_app().app_context():
        create_user(args.username, args.password, args.admin)
