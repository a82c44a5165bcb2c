"""
Management commands, run with the Flask CLI:

    flask --app api seed             # admin, instructor and sample courses
    flask --app api cleanup-tokens   # one-shot sweep of expired revocation rows
"""
from __future__ import annotations

import logging
import os

import click
from flask import current_app

from models import storage
from models.course import Course
from models.role import Role
from models.user import User
from utils.security import hash_password

logger = logging.getLogger(__name__)

SAMPLE_COURSES = [
    {
        "title": "Docker Mastery: From Zero to Hero",
        "description": "Learn how to build, ship, and run distributed applications with Docker.",
    },
    {
        "title": "Advanced Python Patterns",
        "description": "Deep dive into descriptors, context managers, and typing in Python.",
    },
    {
        "title": "PostgreSQL Database Administration",
        "description": "Master indexing, partitioning, and performance tuning in Postgres.",
    },
]


def _upsert_user(email: str, password: str, first_name: str, last_name: str, role: Role) -> User:
    """Create the user if missing; an existing account is left untouched."""
    session = storage.get_session()
    user = session.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_verified=True,
    )
    storage.new(user)
    storage.save()
    return user


def seed_database(admin_email: str, admin_password: str, instructor_email: str, instructor_password: str) -> dict:
    admin = _upsert_user(admin_email, admin_password, "Super", "Admin", Role.ADMIN)
    instructor = _upsert_user(instructor_email, instructor_password, "Master", "Instructor", Role.INSTRUCTOR)

    # Replace the instructor's sample courses so re-running does not duplicate them
    session = storage.get_session()
    session.query(Course).filter(Course.instructor_id == instructor.id).delete(synchronize_session=False)
    for course in SAMPLE_COURSES:
        storage.new(Course(instructor_id=instructor.id, **course))
    storage.save()
    return {"admin": admin, "instructor": instructor, "courses": len(SAMPLE_COURSES)}


def register_commands(app):
    @app.cli.command("seed")
    def seed():
        """Seed an admin, an instructor and sample courses."""
        admin_password = os.getenv("ADMIN_PASS")
        instructor_password = os.getenv("INSTRUCTOR_PASS")
        if not admin_password:
            raise click.ClickException("ADMIN_PASS environment variable required")
        if not instructor_password:
            raise click.ClickException("INSTRUCTOR_PASS environment variable required")

        result = seed_database(
            os.getenv("ADMIN_EMAIL", "admin@example.com"),
            admin_password,
            os.getenv("INSTRUCTOR_EMAIL", "instructor@example.com"),
            instructor_password,
        )
        click.echo(f"Admin user seeded: {result['admin'].to_dict()}")
        click.echo(f"Instructor user seeded: {result['instructor'].to_dict()}")
        click.echo(f"{result['courses']} sample courses seeded for {result['instructor'].email}")

    @app.cli.command("cleanup-tokens")
    def cleanup_tokens():
        """Remove expired blacklisted and refresh tokens."""
        revocations = current_app.extensions["session_engine"].revocations
        click.echo("Starting token removal...")
        blacklisted = revocations.sweep_expired_blacklist()
        refresh = revocations.sweep_expired_refresh()
        click.echo(
            f"Token cleanup complete. Removed {blacklisted} blacklisted and {refresh} refresh tokens"
        )
