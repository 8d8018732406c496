"""
Catalog routes — public product search, admin product and brand CRUD.
"""
import logging
import re

from flask import Blueprint, request, jsonify

from jewelcms.database import get_session
from jewelcms.models.catalog import Brand, Product
from jewelcms.models.enums import ProductStatus
from jewelcms.services.repository import Repository

logger = logging.getLogger('routes.catalog')

bp = Blueprint('catalog', __name__)

STATUS_VALUES = {s.value for s in ProductStatus}
EDITABLE_FIELDS = {
    'name': 'name',
    'sku': 'sku',
    'description': 'description',
    'price': 'price',
    'comparePrice': 'compare_price',
    'brandId': 'brand_id',
    'keywords': 'keywords',
    'inStock': 'in_stock',
    'stockQuantity': 'stock_quantity',
    'status': 'status',
    'featured': 'featured',
}


def _slugify(name):
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def _product_updates(data, partial):
    """Map a request body onto model attributes; raises ValueError on bad input."""
    if not partial:
        for field in ('name', 'sku', 'price'):
            if data.get(field) in (None, ''):
                raise ValueError(f'{field} is required')

    updates = {attr: data[key] for key, attr in EDITABLE_FIELDS.items() if key in data}
    if 'price' in updates:
        try:
            updates['price'] = float(updates['price'])
        except (TypeError, ValueError):
            raise ValueError('price must be a number') from None
        if updates['price'] <= 0:
            raise ValueError('price must be positive')
    if 'status' in updates and updates['status'] not in STATUS_VALUES:
        raise ValueError(f"Invalid status '{updates['status']}'")
    if updates.get('name'):
        updates['slug'] = _slugify(updates['name'])
    return updates


# ── Public ───────────────────────────────────────────────────────────────────

@bp.route('/api/products')
def list_products():
    """Search products by name substring, brand and status (default PUBLISHED)."""
    filters = {
        'name': request.args.get('q') or None,
        'brand_id': request.args.get('brandId') or None,
        'status': request.args.get('status') or ProductStatus.PUBLISHED.value,
    }
    session = get_session()
    try:
        products = Repository(session).search('products', filters)
        return jsonify({'products': [p.to_dict() for p in products]})
    except Exception:
        logger.error("Failed to fetch products", exc_info=True)
        return jsonify({'error': 'Failed to fetch products'}), 500
    finally:
        session.close()


@bp.route('/api/products/<product_id>')
def get_product(product_id):
    session = get_session()
    try:
        product = Repository(session).get_by_id('products', product_id)
        if product is None:
            return jsonify({'error': 'Product not found'}), 404
        return jsonify({'product': product.to_dict()})
    finally:
        session.close()


# ── Admin ────────────────────────────────────────────────────────────────────

@bp.route('/api/admin/products', methods=['POST'])
def create_product():
    data = request.get_json(silent=True) or {}
    try:
        updates = _product_updates(data, partial=False)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    session = get_session()
    try:
        product = Repository(session).create('products', Product(**updates))
        logger.info("Product %s created (%s)", product.id, product.sku)
        return jsonify({'product': product.to_dict()}), 201
    except Exception:
        session.rollback()
        logger.error("Failed to create product", exc_info=True)
        return jsonify({'error': 'Failed to create product'}), 500
    finally:
        session.close()


@bp.route('/api/admin/products/<product_id>', methods=['PUT'])
def update_product(product_id):
    data = request.get_json(silent=True) or {}
    try:
        updates = _product_updates(data, partial=True)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    session = get_session()
    try:
        product = Repository(session).update('products', product_id, updates)
        if product is None:
            return jsonify({'error': 'Product not found'}), 404
        return jsonify({'product': product.to_dict()})
    except Exception:
        session.rollback()
        logger.error("Failed to update product %s", product_id, exc_info=True)
        return jsonify({'error': 'Failed to update product'}), 500
    finally:
        session.close()


@bp.route('/api/admin/products/<product_id>', methods=['DELETE'])
def delete_product(product_id):
    """Delete a product. Wishlist items pointing at it are left in place."""
    session = get_session()
    try:
        if not Repository(session).delete('products', product_id):
            return jsonify({'error': 'Product not found'}), 404
        return jsonify({'message': 'Product deleted successfully'})
    except Exception:
        session.rollback()
        logger.error("Failed to delete product %s", product_id, exc_info=True)
        return jsonify({'error': 'Failed to delete product'}), 500
    finally:
        session.close()


# ── Admin brands ─────────────────────────────────────────────────────────────

BRAND_FIELDS = ('name', 'slug', 'description', 'website', 'featured')


def _unique_slug(slug, taken):
    candidate, n = slug, 1
    while candidate in taken:
        candidate = f'{slug}-{n}'
        n += 1
    return candidate


def _brand_with_count(repo, brand):
    data = brand.to_dict()
    data['productCount'] = len(repo.get_by('products', 'brand_id', brand.id))
    return data


@bp.route('/api/admin/brands')
def list_brands():
    session = get_session()
    try:
        repo = Repository(session)
        return jsonify({'brands': [_brand_with_count(repo, b) for b in repo.get_all('brands')]})
    except Exception:
        logger.error("Failed to fetch brands", exc_info=True)
        return jsonify({'error': 'Failed to fetch brands'}), 500
    finally:
        session.close()


@bp.route('/api/admin/brands/<brand_id>')
def get_brand(brand_id):
    session = get_session()
    try:
        repo = Repository(session)
        brand = repo.get_by_id('brands', brand_id)
        if brand is None:
            return jsonify({'error': 'Brand not found'}), 404
        return jsonify({'brand': _brand_with_count(repo, brand)})
    finally:
        session.close()


@bp.route('/api/admin/brands', methods=['POST'])
def create_brand():
    """Create a brand; the slug defaults to the name and is made unique."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'name is required'}), 400

    session = get_session()
    try:
        repo = Repository(session)
        taken = {b.slug for b in repo.get_all('brands')}
        brand = Brand(
            name=name,
            slug=_unique_slug(data.get('slug') or _slugify(name), taken),
            description=data.get('description'),
            website=data.get('website'),
            featured=bool(data.get('featured', False)),
        )
        repo.create('brands', brand)
        logger.info("Brand %s created (%s)", brand.id, brand.slug)
        return jsonify({'brand': brand.to_dict()}), 201
    except Exception:
        session.rollback()
        logger.error("Failed to create brand", exc_info=True)
        return jsonify({'error': 'Failed to create brand'}), 500
    finally:
        session.close()


@bp.route('/api/admin/brands/<brand_id>', methods=['PUT'])
def update_brand(brand_id):
    data = request.get_json(silent=True) or {}
    updates = {field: data[field] for field in BRAND_FIELDS if field in data}
    if 'name' in updates and not (updates['name'] or '').strip():
        return jsonify({'error': 'name cannot be empty'}), 400

    session = get_session()
    try:
        repo = Repository(session)
        brand = repo.get_by_id('brands', brand_id)
        if brand is None:
            return jsonify({'error': 'Brand not found'}), 404
        if updates.get('slug') and updates['slug'] != brand.slug:
            taken = {b.slug for b in repo.get_all('brands') if b.id != brand_id}
            updates['slug'] = _unique_slug(updates['slug'], taken)
        brand = repo.update('brands', brand_id, updates)
        return jsonify({'brand': brand.to_dict()})
    except Exception:
        session.rollback()
        logger.error("Failed to update brand %s", brand_id, exc_info=True)
        return jsonify({'error': 'Failed to update brand'}), 500
    finally:
        session.close()


@bp.route('/api/admin/brands/<brand_id>', methods=['DELETE'])
def delete_brand(brand_id):
    """Delete a brand that no product references."""
    session = get_session()
    try:
        repo = Repository(session)
        products = repo.get_by('products', 'brand_id', brand_id)
        if products:
            return jsonify({
                'error': 'Cannot delete brand with existing products',
                'productCount': len(products),
            }), 400
        if not repo.delete('brands', brand_id):
            return jsonify({'error': 'Brand not found'}), 404
        return jsonify({'message': 'Brand deleted successfully'})
    except Exception:
        session.rollback()
        logger.error("Failed to delete brand %s", brand_id, exc_info=True)
        return jsonify({'error': 'Failed to delete brand'}), 500
    finally:
        session.close()
