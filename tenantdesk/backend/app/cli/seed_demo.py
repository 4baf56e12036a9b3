# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth import hash_password
from app.db import SessionLocal
from app.models import Apartment, AppUser, Building, Client, ClientMembership, Tenant
from app.services.subscription_service import current_subscription, ensure_default_plans, start_trial


@dataclass(frozen=True)
class SeedResult:
    client_slug: str
    manager_email: str
    building_id: int
    tenant_count: int


def _get_or_create_client(db: Session, slug: str, name: str, email: str) -> Client:
    row = db.scalar(select(Client).where(Client.slug == slug))
    if row:
        return row
    row = Client(slug=slug, name=name, email=email)
    db.add(row)
    db.flush()
    return row


def _get_or_create_user(db: Session, email: str, password: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(email=email, display_name=email.split("@")[0], password_hash=hash_password(password))
    db.add(row)
    db.flush()
    return row


def _ensure_membership(db: Session, client_id: int, user_id: int, role: str) -> None:
    existing = db.scalar(
        select(ClientMembership).where(ClientMembership.client_id == client_id, ClientMembership.user_id == user_id)
    )
    if existing:
        return
    db.add(ClientMembership(client_id=client_id, user_id=user_id, role=role))
    db.flush()


def seed_demo(
    *,
    client_slug: str = "demo",
    client_name: str = "Demo Property Management",
    admin_email: str = "admin@demo.local",
    manager_email: str = "manager@demo.local",
    password: str = "demo-password",
) -> SeedResult:
    """Idempotent: rerunning reuses the client, users and the first building."""
    db = SessionLocal()
    try:
        ensure_default_plans(db)

        client = _get_or_create_client(db, client_slug, client_name, manager_email)
        admin = _get_or_create_user(db, admin_email, password)
        manager = _get_or_create_user(db, manager_email, password)
        _ensure_membership(db, client.id, admin.id, "admin")
        _ensure_membership(db, client.id, manager.id, "client")
        if current_subscription(db, client_id=client.id) is None:
            start_trial(db, client_id=client.id)

        building = db.scalar(select(Building).where(Building.client_id == client.id).order_by(Building.id.asc()))
        if building is None:
            building = Building(
                client_id=client.id,
                street_address="Bulevar Oslobodjenja 12",
                city="Novi Sad",
                region="Vojvodina",
                number_of_apartments=8,
                stories_high=4,
                has_elevator=True,
                has_central_heating=True,
            )
            db.add(building)
            db.flush()

        tenant_count = 0
        for i, (first, last) in enumerate((("Ana", "Petrovic"), ("Marko", "Jovanovic"), ("Ivana", "Nikolic")), start=1):
            number = f"{i}"
            apt = db.scalar(
                select(Apartment).where(Apartment.building_id == building.id, Apartment.apartment_number == number)
            )
            if apt is None:
                apt = Apartment(building_id=building.id, apartment_number=number, floor=(i - 1) // 2, room_count=2)
                db.add(apt)
                db.flush()

            email = f"{first.lower()}@demo.local"
            tenant = db.scalar(select(Tenant).where(Tenant.apartment_id == apt.id, Tenant.email == email))
            if tenant is None:
                user = _get_or_create_user(db, email, password)
                _ensure_membership(db, client.id, user.id, "tenant")
                tenant = Tenant(
                    apartment_id=apt.id,
                    user_id=user.id,
                    first_name=first,
                    last_name=last,
                    email=email,
                    phone_number=f"+38164123450{i}",
                    is_primary=True,
                    move_in_date=date(2024, 1, i),
                )
                db.add(tenant)
                db.flush()
            tenant_count += 1

        db.commit()
        return SeedResult(
            client_slug=client.slug,
            manager_email=manager_email,
            building_id=int(building.id),
            tenant_count=tenant_count,
        )
    finally:
        db.close()
