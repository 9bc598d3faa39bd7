"""
Blog post database model.

One table keyed by id, with a native array column for tags.
"""
from sqlalchemy import Column, BigInteger, Integer, Text, DateTime, JSON
from sqlalchemy.dialects.postgresql import ARRAY

from apps.shared.database import Base

# SQLite only auto-increments INTEGER PRIMARY KEY and has no array type
PostId = BigInteger().with_variant(Integer(), "sqlite")
TagList = ARRAY(Text).with_variant(JSON(), "sqlite")


class BlogPost(Base):
    """
    A post in the blogging platform.

    - id is assigned by the database on insert and never changes
    - title, content and category are required and never empty
    - tags is an ordered list, replaced as a whole on update
    - created_at is set once; updated_at moves forward on every update
    """
    __tablename__ = "blog_posts"

    id = Column(PostId, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    tags = Column(TagList, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<BlogPost id={self.id} title={self.title!r}>"
