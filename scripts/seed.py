"""Seed the database with demo campaigns and an admin user, then print its token."""

from __future__ import annotations

from sqlalchemy import insert, select

from leadhub.config import load_settings
from leadhub.db.session import create_engine_from_env
from leadhub.db.tables import campaigns, users
from leadhub.ingest import load_seed_campaigns
from leadhub.utils.tokens import issue_token

ADMIN = {"name": "Import Admin", "email": "admin@example.com", "role": "admin"}


def main() -> None:
    settings = load_settings()
    engine = create_engine_from_env(settings.database_url)
    with engine.begin() as conn:
        admin_id = conn.execute(select(users.c.id).where(users.c.email == ADMIN["email"])).scalar_one_or_none()
        if admin_id is None:
            admin_id = conn.execute(insert(users).values(**ADMIN)).inserted_primary_key[0]
        existing = {name.lower() for name in conn.execute(select(campaigns.c.name)).scalars()}
        for campaign in load_seed_campaigns():
            if campaign["name"].lower() in existing:
                continue
            conn.execute(insert(campaigns).values(created_by=admin_id, **campaign))
    print("Seed complete")
    print("Admin token:", issue_token(admin_id, ADMIN["role"], secret=settings.signing_secret))


if __name__ == "__main__":
    main()
