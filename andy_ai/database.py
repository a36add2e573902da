from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from andy_ai.config import settings
from andy_ai.models import Base

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Initialize database
def init_db(bind=engine):
    Base.metadata.create_all(bind=bind)

if __name__ == '__main__':
    init_db()
