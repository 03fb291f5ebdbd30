from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Boolean, JSON
from sqlalchemy.orm import declarative_base
from datetime import datetime
import pytz

Base = declarative_base()


def get_current_time():
    return datetime.now(pytz.utc)


def as_utc(value: datetime) -> datetime:
    """
    Return `value` as an aware UTC datetime. Some drivers (SQLite) hand back
    naive datetimes even for timezone-aware columns.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


# Model for User
class User(Base):
    """
    Database model for an account that can authenticate against the API.

    Attributes:
    ----------
    id : int
        Unique identifier of the user (primary key).
    email : str
        E-mail address, unique across users.
    password_hash : str
        Salted argon2 hash of the password.
    first_name : str
        First name.
    last_name : str
        Last name.
    is_verified : bool
        Whether the e-mail address has been confirmed. Unverified users cannot log in.
    verification_token : str
        One-time token sent by e-mail at registration, cleared once consumed.
    reset_token : str
        One-time password reset token.
    reset_token_expiry : datetime
        Moment after which `reset_token` is no longer accepted.
    refresh_token : str
        The only refresh token currently trusted for this user.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255), unique=True)
    reset_token = Column(String(255), unique=True)
    reset_token_expiry = Column(DateTime(timezone=True))
    refresh_token = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=get_current_time)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=get_current_time, onupdate=get_current_time)

    def to_dict(self):
        """Public representation of the user; never includes secrets."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_verified": self.is_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# Model for Product
class Product(Base):
    """
    Catalog entry.

    Attributes:
    ----------
    id : int
        Unique identifier of the product (primary key).
    name : str
        Product name.
    description : str
        Long description.
    sub_description : str
        Optional short description.
    code : str
        Internal code, unique across products.
    sku : str
        Stock keeping unit, unique across products.
    price : Numeric
        Base price.
    price_sale : Numeric
        Optional sale price.
    quantity : int
        Units in stock.
    taxes : Numeric
        Optional tax rate.
    images, colors, sizes, tags, gender : list
        Lists stored as JSON.
    category : str
        Category name.
    new_label, sale_label : dict
        Optional badge definitions stored as JSON.
    is_published : bool
        Whether the product is visible in the storefront.
    """
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    sub_description = Column(Text)
    code = Column(String(100), unique=True, nullable=False)
    sku = Column(String(100), unique=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    price_sale = Column(Numeric(10, 2))
    quantity = Column(Integer, nullable=False, default=0)
    taxes = Column(Numeric(5, 2))
    images = Column(JSON, nullable=False, default=list)
    colors = Column(JSON, nullable=False, default=list)
    sizes = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    gender = Column(JSON, nullable=False, default=list)
    category = Column(String(100))
    new_label = Column(JSON)
    sale_label = Column(JSON)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=get_current_time)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=get_current_time, onupdate=get_current_time)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sub_description": self.sub_description,
            "code": self.code,
            "sku": self.sku,
            "price": float(self.price) if self.price is not None else None,
            "price_sale": float(self.price_sale) if self.price_sale is not None else None,
            "quantity": self.quantity,
            "taxes": float(self.taxes) if self.taxes is not None else None,
            "images": self.images or [],
            "colors": self.colors or [],
            "sizes": self.sizes or [],
            "tags": self.tags or [],
            "gender": self.gender or [],
            "category": self.category,
            "new_label": self.new_label,
            "sale_label": self.sale_label,
            "is_published": bool(self.is_published),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# Model for Company
class Company(Base):
    """
    Minimal company record.

    Attributes:
    ----------
    id : int
        Unique identifier of the company.
    name : str
        Company name.
    industry : str
        Industry the company operates in.
    """
    __tablename__ = 'companies'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, default=get_current_time)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "industry": self.industry,
        }
