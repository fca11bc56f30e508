"""Provision teacher and student accounts from a CSV.

Self-registration only ever creates admins; staff accounts come from here.

    python -m app.tests.seed.gen_principals

Input ``principals_seed.csv`` (same directory) needs ``name,email,role``.
Rows are inserted into DATABASE_URL with bcrypt hashes and the plain
passwords are written to ``principals_passwords.csv`` for distribution.
"""

import csv
import secrets
import string
from pathlib import Path

from app.db.database import SessionLocal, transaction
from app.models.principal_models import PrincipalType
from app.services.principal_service import PrincipalRepository
from app.utils.hashing import get_password_hash

BASE_DIR = Path(__file__).resolve().parent

INPUT = BASE_DIR / "principals_seed.csv"
OUT_ADMIN = BASE_DIR / "principals_passwords.csv"

SEEDABLE_ROLES = {PrincipalType.teacher.value, PrincipalType.student.value}


def gen_password(length: int = 12) -> str:
    chars = string.ascii_letters + string.digits
    for c in "0OoIl":  # remove confusing chars
        chars = chars.replace(c, "")
    return "".join(secrets.choice(chars) for _ in range(length))


def read_rows(path: Path) -> list[dict]:
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not {"name", "email", "role"}.issubset(reader.fieldnames or []):
            raise ValueError(f"{path.name} must have: name, email, role")

        rows = []
        for r in reader:
            name = (r.get("name") or "").strip()
            email = (r.get("email") or "").strip().lower()
            role = (r.get("role") or "").strip().lower()
            if not name or not email or role not in SEEDABLE_ROLES:
                continue
            rows.append({"name": name, "email": email, "role": PrincipalType(role)})
        return rows


def seed(db, rows: list[dict]) -> list[dict]:
    repo = PrincipalRepository(db)
    created = []
    with transaction(db):
        for row in rows:
            if repo.find_email_owner(row["email"]) is not None:
                continue  # skip duplicates

            plain = gen_password()
            repo.create(
                row["role"],
                name=row["name"],
                email=row["email"],
                password_hash=get_password_hash(plain),
            )
            created.append(
                {"name": row["name"], "email": row["email"], "role": row["role"].value, "password": plain}
            )
    return created


def main():
    if not INPUT.exists():
        raise FileNotFoundError(f"Missing file: {INPUT}")

    db = SessionLocal()
    try:
        created = seed(db, read_rows(INPUT))
    finally:
        db.close()

    with OUT_ADMIN.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=["name", "email", "role", "password"])
        w.writeheader()
        w.writerows(created)

    print("Distribute to users:", OUT_ADMIN)
    print("Rows created:", len(created))


if __name__ == "__main__":
    main()
