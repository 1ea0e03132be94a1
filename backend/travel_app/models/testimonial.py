# backend/travel_app/models/testimonial.py

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Testimonial(BaseModel):
    """Free-form site feedback, independent of any booking."""

    __tablename__ = "testimonials"

    id      = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    user = relationship("User")
