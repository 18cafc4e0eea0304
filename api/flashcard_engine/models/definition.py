"""
Definition model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional


class Definition(SQLModel, table=True):
    """Definition table - dictionary entries a collection item can link to."""
    __tablename__ = "definition"

    id: Optional[int] = Field(default=None, primary_key=True)
    word: str = Field(index=True)  # Headword surface form
    definition: str
    language_id: Optional[int] = None
