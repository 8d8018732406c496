"""
Public wishlist routes — create, view by share token, add/remove items.

Editing a wishlist does not rescore leads that already reference it.
"""
import logging

from flask import Blueprint, request, jsonify, session as flask_session

from jewelcms.database import get_session
from jewelcms.models.wishlist import Wishlist, WishlistItem
from jewelcms.services.repository import Repository

logger = logging.getLogger('routes.wishlists')

bp = Blueprint('wishlists', __name__, url_prefix='/api/wishlists')


def _by_token(repo, share_token):
    matches = repo.get_by('wishlists', 'share_token', share_token)
    return matches[0] if matches else None


@bp.route('', methods=['POST'])
def create_wishlist():
    """Create a wishlist from a list of product ids."""
    data = request.get_json(silent=True) or {}
    items = data.get('items')
    if not isinstance(items, list) or not items:
        return jsonify({'error': 'Wishlist must contain at least one item'}), 400

    session = get_session()
    try:
        wishlist = Wishlist(
            name=(data.get('name') or '').strip() or 'My Wishlist',
            email=(data.get('email') or '').strip() or None,
            customer_id=flask_session.get('customer_id'),
            items=[WishlistItem(product_id=str(pid)) for pid in items],
        )
        Repository(session).create('wishlists', wishlist)
        logger.info("Wishlist %s created with %d items", wishlist.id, len(items))
        return jsonify({
            'wishlistId': wishlist.id,
            'shareToken': wishlist.share_token,
            'message': 'Wishlist created successfully',
        }), 201
    except Exception:
        session.rollback()
        logger.error("Failed to create wishlist", exc_info=True)
        return jsonify({'error': 'Failed to create wishlist'}), 500
    finally:
        session.close()


@bp.route('/<share_token>')
def get_wishlist(share_token):
    """Wishlist with each item's product; items for deleted products are hidden."""
    session = get_session()
    try:
        repo = Repository(session)
        wishlist = _by_token(repo, share_token)
        if wishlist is None:
            return jsonify({'error': 'Wishlist not found'}), 404
        products = {p.id: p for p in repo.get_all_products()}
        return jsonify(wishlist.to_dict(products=products))
    except Exception:
        logger.error("Failed to fetch wishlist %s", share_token, exc_info=True)
        return jsonify({'error': 'Failed to fetch wishlist'}), 500
    finally:
        session.close()


@bp.route('/<share_token>/items', methods=['POST'])
def add_item(share_token):
    """Append a product to the wishlist."""
    data = request.get_json(silent=True) or {}
    product_id = data.get('productId')
    if not product_id:
        return jsonify({'error': 'Product ID is required'}), 400

    session = get_session()
    try:
        repo = Repository(session)
        wishlist = _by_token(repo, share_token)
        if wishlist is None:
            return jsonify({'error': 'Wishlist not found'}), 404
        if any(item.product_id == product_id for item in wishlist.items):
            return jsonify({'error': 'Product already in wishlist'}), 400

        item = WishlistItem(product_id=product_id, notes=data.get('notes') or None)
        wishlist.items.append(item)
        repo.update('wishlists', wishlist.id, {})
        return jsonify({'message': 'Item added to wishlist', 'item': item.to_dict()})
    except Exception:
        session.rollback()
        logger.error("Failed to add item to wishlist %s", share_token, exc_info=True)
        return jsonify({'error': 'Failed to add item to wishlist'}), 500
    finally:
        session.close()


@bp.route('/<share_token>/items/<product_id>', methods=['DELETE'])
def remove_item(share_token, product_id):
    """Remove a product from the wishlist."""
    session = get_session()
    try:
        repo = Repository(session)
        wishlist = _by_token(repo, share_token)
        if wishlist is None:
            return jsonify({'error': 'Wishlist not found'}), 404

        item = next((i for i in wishlist.items if i.product_id == product_id), None)
        if item is None:
            return jsonify({'error': 'Item not found in wishlist'}), 404

        wishlist.items.remove(item)
        wishlist.items.reorder()
        repo.update('wishlists', wishlist.id, {})
        return jsonify({'message': 'Item removed from wishlist'})
    except Exception:
        session.rollback()
        logger.error("Failed to remove item from wishlist %s", share_token, exc_info=True)
        return jsonify({'error': 'Failed to remove item from wishlist'}), 500
    finally:
        session.close()
