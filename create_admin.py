import argparse
import sys
import os
from datetime import date

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from lendfi.config import settings
from lendfi.database import Database
from lendfi.logging_config import configure_logging
from lendfi.models.user_models import KycStatus, User, UserRole
from lendfi.schemas.auth_schemas import check_password_strength


def create_admin_account(database: Database, email: str, password: str, name: str,
                         phone: str, id_number: str, date_of_birth: date) -> User:
    """Create an admin account, or promote the existing account with that email."""
    db = database.session()
    email = email.strip().lower()

    try:
        admin = db.query(User).filter(User.email == email).first()

        if admin:
            print(f"Account {email} already exists (ID {admin.id}), promoting to admin")
        else:
            admin = User(
                email=email,
                name=name,
                phone=phone,
                id_number=id_number,
                date_of_birth=date_of_birth,
            )
            admin.set_password(password)
            db.add(admin)

        admin.role = UserRole.ADMIN
        admin.kyc_status = KycStatus.VERIFIED
        admin.is_active = True

        db.commit()
        db.refresh(admin)
        print(f"Admin ready: {admin.email} (ID {admin.id})")
        return admin
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote a LenDeFi admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Platform Admin")
    parser.add_argument("--phone", default="0000000000")
    parser.add_argument("--id-number", required=True)
    parser.add_argument("--date-of-birth", type=date.fromisoformat, default=date(1990, 1, 1))
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    configure_logging()

    try:
        check_password_strength(args.password)
    except ValueError as e:
        sys.exit(f"Weak password: {e}")

    database = Database(args.database_url)
    try:
        database.create_all()
        create_admin_account(
            database,
            email=args.email,
            password=args.password,
            name=args.name,
            phone=args.phone,
            id_number=args.id_number,
            date_of_birth=args.date_of_birth,
        )
    finally:
        database.dispose()
