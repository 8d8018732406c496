"""
Wishlist + WishlistItem models.

Items reference products by id only; no foreign key, so deleting a product
leaves dangling items that the scorer prices at 0.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from jewelcms.database import Base
from jewelcms.models.common import new_id, isoformat, now


class Wishlist(Base):
    __tablename__ = 'wishlists'

    id = Column(Text, primary_key=True, default=new_id)
    name = Column(Text, nullable=False, default='My Wishlist')
    email = Column(Text, nullable=True)
    customer_id = Column(Text, nullable=True, index=True)
    share_token = Column(Text, nullable=False, unique=True, default=new_id)
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)

    items = relationship(
        'WishlistItem',
        order_by='WishlistItem.position',
        collection_class=ordering_list('position'),
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    def to_dict(self, products=None):
        """Serialize; when `products` (id → Product) is given, embed each item's product."""
        items = []
        for item in self.items:
            data = item.to_dict()
            if products is not None:
                product = products.get(item.product_id)
                if product is None:
                    continue
                data['product'] = product.to_dict()
            items.append(data)
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'customerId': self.customer_id,
            'shareToken': self.share_token,
            'items': items,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class WishlistItem(Base):
    __tablename__ = 'wishlist_items'

    id = Column(Text, primary_key=True, default=new_id)
    wishlist_id = Column(Text, ForeignKey('wishlists.id'), nullable=False, index=True)
    product_id = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    added_at = Column(DateTime, default=now)

    def to_dict(self):
        return {
            'id': self.id,
            'wishlistId': self.wishlist_id,
            'productId': self.product_id,
            'notes': self.notes,
            'addedAt': isoformat(self.added_at),
        }
