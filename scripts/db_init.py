#!/usr/bin/env python3
"""
Database initialization script
"""
import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
current_dir = Path(__file__).parent
root_dir = current_dir.parent
sys.path.insert(0, str(root_dir))

async def init_database() -> None:
    """Create every table"""
    from photofeed.db.session import init_db
    from photofeed.config import settings

    print(f"🚀 Initializing database: {settings.database_url}")

    try:
        await init_db()
        print("✅ Database initialized successfully")
    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)

async def seed_users() -> None:
    """Create a few users for local development, as if they had signed in once"""
    from photofeed.db.session import AsyncSessionLocal
    from photofeed.services.auth_service import AuthService, Identity

    print("👤 Creating development users...")

    identities = [
        Identity(subject="user_dev_alice", name="Alice"),
        Identity(subject="user_dev_bob", name="Bob"),
        Identity(subject="user_dev_carol", name="Carol"),
    ]

    async with AsyncSessionLocal() as db:
        auth_service = AuthService(db)
        for identity in identities:
            user = await auth_service.sync_user(identity)
            print(f"✅ {user.name} ({user.clerk_id})")

async def check_database_connection() -> bool:
    """Check if database is accessible"""
    from photofeed.db.session import engine
    from sqlalchemy import text

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("✅ Database connection successful")
        return True
    except Exception as e:
        print(f"❌ Database connection failed: {e}")
        return False

async def drop_database() -> None:
    """Drop all database tables"""
    from photofeed.db.session import engine
    from photofeed.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    print("✅ Database dropped successfully")

def main() -> None:
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Database Initialization")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Initialize database")
    subparsers.add_parser("check", help="Check database connection")
    subparsers.add_parser("seed", help="Create development users")

    reset_parser = subparsers.add_parser("reset", help="Drop and reinitialize")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm reset")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "init":
            asyncio.run(init_database())

        elif args.command == "check":
            success = asyncio.run(check_database_connection())
            sys.exit(0 if success else 1)

        elif args.command == "seed":
            asyncio.run(seed_users())

        elif args.command == "reset":
            if not args.confirm:
                print("⚠️  WARNING: This will drop ALL tables and data!")
                print("   Use --confirm flag to proceed")
                return

            asyncio.run(drop_database())
            asyncio.run(init_database())

    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
