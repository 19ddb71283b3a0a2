"""
Create a user (e.g. the first admin; registration can only create plain users).
Run from project root:
  python -m app.scripts.create_user NAME MOBILE EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user "Site Admin" 9876543210 admin@example.edu your-secure-password admin
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.models import USER_ROLES
from app.services.auth import AuthServiceError, create_user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a site user with an explicit role.")
    parser.add_argument("name", help="Display name")
    parser.add_argument("mobile", help="10-digit mobile number")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password")
    parser.add_argument("role", nargs="?", default="user", choices=list(USER_ROLES))
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        user_id = create_user(
            db,
            args.name.strip(),
            args.mobile.strip(),
            args.email.strip(),
            args.password,
            role=args.role,
        )
    except AuthServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{args.email.strip()}' (id={user_id}) with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
