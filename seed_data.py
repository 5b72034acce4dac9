#!/usr/bin/env python3
"""
Seed Data Script

Creates console users, EV owners, charging stations and a few bookings in
every lifecycle status for local development.

Usage:
    python seed_data.py
"""

from datetime import timedelta

from evcharge.database import SessionLocal, init_db
from evcharge.models import User, EVOwner, Station, Booking
from evcharge.auth.permissions import Role
from evcharge.auth.utils import get_password_hash
from evcharge.bookings.qr_service import QRService
from evcharge.bookings.state_machine import BookingStatus
from evcharge.utils import utcnow

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for the EV Charging Console...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Booking).delete()
        for station in db.query(Station).all():
            station.operators = []
        db.flush()
        db.query(Station).delete()
        db.query(EVOwner).delete()
        db.query(User).delete()

        # 1. Console users
        print("Creating users...")
        admin = User(username="admin", password_hash=get_password_hash("Admin123!"), role=Role.BACKOFFICE.value)
        operator_a = User(username="operator1", password_hash=get_password_hash("Operator123!"), role=Role.OPERATOR.value)
        operator_b = User(username="operator2", password_hash=get_password_hash("Operator123!"), role=Role.OPERATOR.value)
        users = [admin, operator_a, operator_b]
        db.add_all(users)
        db.flush()

        # 2. EV owners
        print("Creating EV owners...")
        owners = [
            EVOwner(nic="199012345678", first_name="Nimal", last_name="Perera",
                    email="nimal@example.com", phone="+94771234567"),
            EVOwner(nic="198845678912", first_name="Kumari", last_name="Silva",
                    email="kumari@example.com", phone="+94772345678"),
            EVOwner(nic="200198765432", first_name="Ruwan", last_name="Fernando",
                    email="ruwan@example.com", phone="+94773456789", is_active=False),
        ]
        db.add_all(owners)
        db.flush()

        # 3. Stations
        print("Creating stations...")
        stations = [
            Station(station_id="CMB-001", name="Colombo Fort Fast Charge", latitude=6.9344, longitude=79.8428,
                    address="Fort, Colombo 01", type="DC", available_slots=4, operators=[operator_a]),
            Station(station_id="CMB-002", name="Bambalapitiya Mall", latitude=6.8897, longitude=79.8560,
                    address="Galle Road, Colombo 04", type="AC", available_slots=6, operators=[operator_a, operator_b]),
            Station(station_id="KDY-001", name="Kandy City Centre", latitude=7.2936, longitude=80.6350,
                    address="Dalada Veediya, Kandy", type="AC", available_slots=2, operators=[operator_b]),
        ]
        db.add_all(stations)
        db.flush()

        # 4. Bookings, one per lifecycle status
        print("Creating bookings...")
        now = utcnow()
        bookings = []
        for offset, status in enumerate(BookingStatus):
            start = now + timedelta(hours=offset - 1)
            bookings.append(Booking(
                owner_nic=owners[offset % 2].nic,
                station_id=stations[offset % len(stations)].station_id,
                start_time_utc=start,
                end_time_utc=start + timedelta(hours=2),
                status=status.value,
                qr_code=QRService.issue_token(),
                rejection_reason="Station under maintenance" if status == BookingStatus.REJECTED else None,
                created_utc=now,
                updated_utc=now
            ))
        db.add_all(bookings)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - {len(users)} users (admin / Admin123!, operator1 / Operator123!)")
        print(f"  - {len(owners)} EV owners")
        print(f"  - {len(stations)} stations")
        print(f"  - {len(bookings)} bookings")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
