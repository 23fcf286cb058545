# Insert the default clock-in site
from sqlalchemy.engine import Engine
from sqlmodel import Session

from core import config
from db.session import create_db_and_tables, engine
from models.site import Site

DEFAULT_SITE = {
    "id": "MAIN",
    "name": "Healthcare Center A",
    "address": "123 Healthcare Center, San Francisco, CA",
    "latitude": 37.7749,
    "longitude": -122.4194,
    "radius_meters": config.DEFAULT_SITE_RADIUS_METERS,
}


def seed_sites(target: Engine = engine) -> bool:
    create_db_and_tables(target)
    with Session(target) as session:
        if session.get(Site, DEFAULT_SITE["id"]):
            print(f"Site {DEFAULT_SITE['id']} already exists")
            return False

        session.add(Site(**DEFAULT_SITE))
        session.commit()
        print(f"Added site {DEFAULT_SITE['id']} ({DEFAULT_SITE['radius_meters']:g} m radius)")
        return True


if __name__ == "__main__":
    seed_sites()
