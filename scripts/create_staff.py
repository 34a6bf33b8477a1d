"""Bootstrap a staff user directly in the database.

The first Admin cannot be created over HTTP because `/staff` itself requires
an Admin, so operators run this once per environment.
"""

import argparse

from welfund.common.db import SessionLocal
from welfund.common.portal import STAFF_ROLES
from welfund.services.ledger.service import LedgerService


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a staff portal user.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", required=True)
    parser.add_argument("--role", choices=STAFF_ROLES, default="Admin")
    args = parser.parse_args()

    staff = LedgerService(SessionLocal).create_staff(args.email, args.full_name, args.role)
    print(f"Created staff user id={staff.id} email={staff.email} role={staff.staff_role}")


if __name__ == "__main__":
    main()
