"""
Database Initialization Script
Run this script to create all database tables and seed the default owner
"""
import os
import sys
from app import create_app
from models import db, User, TV, Content, ContentStatus


def init_database(config_name=None):
    """Initialize database with tables and seed data"""

    app = create_app(config_name)

    with app.app_context():
        # Drop all tables (use with caution in production!)
        print("Dropping existing tables...")
        db.drop_all()

        # Create all tables
        print("Creating database tables...")
        db.create_all()

        # Owner referenced by createdById on TVs and content
        print("Creating default owner...")
        owner = User(
            email=app.config['ADMIN_EMAIL'],
            first_name='CastBoard',
            last_name='Admin'
        )
        db.session.add(owner)
        db.session.flush()

        # Create sample data for testing (optional)
        if os.getenv('FLASK_ENV') == 'development':
            print("Adding sample data for development...")

            tv = TV(
                name='Lobby TV',
                description='Sample display',
                mac_address='D4-93-90-39-28-EE',
                created_by_id=owner.id
            )
            db.session.add(tv)
            db.session.flush()

            db.session.add(Content(
                title='Welcome',
                description='Sample content',
                image_url='/uploads/welcome.png',
                status=ContentStatus.ACTIVE,
                duration=15,
                selected_tvs=[tv.id],
                created_by_id=owner.id
            ))

        # Commit all changes
        db.session.commit()

        print("\n" + "="*50)
        print("Database initialized successfully!")
        print("="*50)
        print(f"\nDefault owner: {owner.email} (id {owner.id})")
        print("Use this id as createdById when creating TVs and content.")
        print("="*50 + "\n")
        return owner.id


if __name__ == '__main__':
    confirm = input("This will delete all existing data. Continue? (yes/no): ")
    if confirm.lower() == 'yes':
        init_database()
    else:
        print("Database initialization cancelled.")
        sys.exit(0)
