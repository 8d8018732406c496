"""
Catalog models — brands and products.

The scoring engine reads only Product.price.
"""
from sqlalchemy import Column, Text, Float, Boolean, Integer, DateTime, JSON

from jewelcms.database import Base
from jewelcms.models.common import new_id, isoformat, now
from jewelcms.models.enums import ProductStatus, enum_value


class Brand(Base):
    __tablename__ = 'brands'

    id = Column(Text, primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, default='')
    description = Column(Text, nullable=True)
    website = Column(Text, nullable=True)
    featured = Column(Boolean, default=False)
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'website': self.website,
            'featured': bool(self.featured),
        }


class Product(Base):
    __tablename__ = 'products'

    id = Column(Text, primary_key=True, default=new_id)
    sku = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, default='')
    description = Column(Text, default='')
    price = Column(Float, nullable=False)
    compare_price = Column(Float, nullable=True)
    brand_id = Column(Text, nullable=True, index=True)
    keywords = Column(JSON, default=list)
    in_stock = Column(Boolean, default=True)
    stock_quantity = Column(Integer, nullable=True)
    status = Column(Text, nullable=False, default=ProductStatus.DRAFT.value)
    featured = Column(Boolean, default=False)
    view_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'price': self.price,
            'comparePrice': self.compare_price,
            'brandId': self.brand_id,
            'keywords': self.keywords or [],
            'inStock': bool(self.in_stock),
            'stockQuantity': self.stock_quantity,
            'status': enum_value(self.status),
            'featured': bool(self.featured),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
