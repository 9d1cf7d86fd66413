"""Reference-data builders shared by fixtures and tests."""

from uuid import uuid4

from sqlalchemy.orm import Session

from donation_kernel.models import Child, Location


def add_location(session: Session, name: str = "Centro Comunitário") -> Location:
    location = Location(id=uuid4(), name=name)
    session.add(location)
    session.flush()
    return location


def add_child(
    session: Session, location: Location, name: str = "Ana Souza", active: bool = True
) -> Child:
    child = Child(id=uuid4(), name=name, location_id=location.id, active=active)
    session.add(child)
    session.flush()
    return child
