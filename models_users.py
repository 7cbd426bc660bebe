from sqlalchemy import Column, DateTime, Integer, String

from dates import utcnow
from extensions import db


class User(db.Model):
    """Sign-in identity. The credit engine only ever sees the email string."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {"email": self.email}
