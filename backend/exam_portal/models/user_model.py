from ..db import Base
from sqlalchemy import String
from sqlalchemy import Column
from fastapi_users.db import SQLAlchemyBaseUserTableUUID


class User(SQLAlchemyBaseUserTableUUID, Base):
    # Only admins hold accounts; students are identified by a self-asserted email
    __tablename__ = "users"
    full_name = Column(String)
