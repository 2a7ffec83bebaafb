from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship, validates

from database import Base


def _now():
    return datetime.now(timezone.utc)


def _empty_images():
    return {"main": None, "gallery": []}


# M:N – uživatel si ukládá produkty pro offline přístup
user_saved_products = Table(
    "user_saved_products",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("saved_at", DateTime(timezone=True), default=_now),
)

# M:N – lajky komentářů
comment_likes = Table(
    "comment_likes",
    Base.metadata,
    Column("comment_id", Integer, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_type = Column(String(30), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    model = Column(String(100), nullable=False)
    sku = Column(String(100), unique=True, nullable=False, index=True)
    brand_id = Column(String(100), index=True)
    brand = Column(JSON)
    category = Column(String(50), nullable=False, index=True)
    sub_category = Column(String(100))
    description = Column(Text, nullable=False)
    short_description = Column(Text)
    status = Column(String(20), nullable=False, default="active", index=True)

    specifications = Column(JSON, default=lambda: [])
    manuals = Column(JSON, default=lambda: [])
    images = Column(JSON, default=_empty_images)
    features = Column(JSON, default=lambda: [])
    applications = Column(JSON, default=lambda: [])
    related_products = Column(JSON, default=lambda: [])
    technical_drawings = Column(JSON, default=lambda: [])
    certifications = Column(JSON, default=lambda: [])
    warranty = Column(JSON)
    dimensions = Column(JSON)
    weight = Column(JSON)
    search_keywords = Column(JSON, default=lambda: [])
    # klíčová slova jako malý text pro LIKE (JSON sloupec ukládá \uXXXX escapy)
    search_text = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    comments = relationship("Comment", back_populates="product", cascade="all, delete-orphan")
    saved_by = relationship("User", secondary=user_saved_products, back_populates="saved_products")

    __mapper_args__ = {
        "polymorphic_on": product_type,
        "polymorphic_identity": "product",
        "with_polymorphic": "*",
    }

    @validates("search_keywords")
    def _sync_search_text(self, key, value):
        self.search_text = " ".join(value or []).lower()
        return value


class Door(Product):
    __tablename__ = "doors"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True, index=True)
    door_type = Column(String(30), nullable=False)
    operation_type = Column(String(30), nullable=False)
    materials = Column(JSON, default=lambda: [])
    safety_features = Column(JSON, default=lambda: [])
    max_dimensions = Column(JSON)
    opening_speed = Column(Float)
    cycles_per_day = Column(Integer)
    insulation_value = Column(Float)
    wind_resistance = Column(String(50))

    __mapper_args__ = {"polymorphic_identity": "door"}


class Gate(Product):
    __tablename__ = "gates"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True, index=True)
    gate_type = Column(String(30), nullable=False)
    operation_type = Column(String(30), nullable=False)
    materials = Column(JSON, default=lambda: [])
    safety_features = Column(JSON, default=lambda: [])
    max_dimensions = Column(JSON)
    opening_speed = Column(Float)
    cycles_per_day = Column(Integer)
    max_weight = Column(Float)

    __mapper_args__ = {"polymorphic_identity": "gate"}


class Motor(Product):
    __tablename__ = "motors"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True, index=True)
    motor_type = Column(String(30), nullable=False)
    power_supply = Column(String(100), nullable=False)
    power_rating = Column(Float, nullable=False)
    torque = Column(Float, nullable=False)
    speed_rpm = Column(Float, nullable=False)
    duty_cycle = Column(String(50), nullable=False)
    ip_rating = Column(String(20), nullable=False)
    temperature_range = Column(JSON)
    max_weight = Column(Float)
    max_width = Column(Float)

    __mapper_args__ = {"polymorphic_identity": "motor"}


class ControlSystem(Product):
    __tablename__ = "control_systems"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True, index=True)
    system_type = Column(String(30), nullable=False)
    compatibility = Column(JSON, default=lambda: [])
    connectivity = Column(JSON, default=lambda: [])
    input_voltage = Column(String(50), nullable=False)
    output_voltage = Column(String(50), nullable=False)
    ip_rating = Column(String(20), nullable=False)
    interfaces = Column(JSON, default=lambda: [])
    programming_methods = Column(JSON, default=lambda: [])
    safety_inputs = Column(JSON, default=lambda: [])

    __mapper_args__ = {"polymorphic_identity": "control_system"}


# product_type -> ORM třída
PRODUCT_MODELS = {
    "product": Product,
    "door": Door,
    "gate": Gate,
    "motor": Motor,
    "control_system": ControlSystem,
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    company = Column(String(200))
    profile_image = Column(Text)
    role = Column(String(20), nullable=False, default="user")

    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    saved_products = relationship("Product", secondary=user_saved_products, back_populates="saved_by")
    comments = relationship("Comment", back_populates="user", cascade="all, delete-orphan")
    liked_comments = relationship("Comment", secondary=comment_likes, back_populates="liked_by")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)

    text = Column(String(1000), nullable=False, default="")
    image = Column(String(500))
    reply_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    product = relationship("Product", back_populates="comments")
    user = relationship("User", back_populates="comments")
    parent = relationship("Comment", remote_side=[id], back_populates="replies")
    replies = relationship("Comment", back_populates="parent", cascade="all, delete-orphan")
    liked_by = relationship("User", secondary=comment_likes, back_populates="liked_comments")

    __table_args__ = (
        Index("ix_comments_product_created", "product_id", "created_at"),
        Index("ix_comments_parent_created", "parent_id", "created_at"),
    )
