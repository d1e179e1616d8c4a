# scripts/setup/init_db.py
"""
Initialize database: creates all tables and optionally seeds vehicles.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--seed-vehicles 5]
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine, SessionLocal
from app.config import settings
from app.services.vehicle_service import count_vehicles, register_vehicle
from sqlalchemy import inspect, text

SEED_LOCATIONS = [
    "New York, NY", "Los Angeles, CA", "Chicago, IL", "Houston, TX", "Phoenix, AZ",
    "Philadelphia, PA", "San Antonio, TX", "San Diego, CA", "Dallas, TX", "San Jose, CA",
]


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed vehicles")
    parser.add_argument("--seed-vehicles", type=int, default=0,
                        help="Register N vehicles if the table is empty")
    args = parser.parse_args()

    print("🗄️  Smart Car DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"✅ Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.seed_vehicles:
        db = SessionLocal()
        try:
            if count_vehicles(db):
                print("\n🚗 Vehicles already registered — seeding skipped")
            else:
                for i in range(args.seed_vehicles):
                    v = register_vehicle(db, location=SEED_LOCATIONS[i % len(SEED_LOCATIONS)])
                    print(f"   ✓ vehicle {v.id} at {v.location}")
        finally:
            db.close()

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
