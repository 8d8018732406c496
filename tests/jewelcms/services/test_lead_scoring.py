"""Tests for jewelcms.services.lead_scoring — score, breakdown, category."""
import pytest
from unittest.mock import patch

from jewelcms.models.catalog import Product
from jewelcms.models.enums import LeadCategory, LeadSource, LeadStatus
from jewelcms.models.lead import Lead
from jewelcms.models.wishlist import Wishlist, WishlistItem
from jewelcms.services.lead_scoring import (
    load_scoring_config,
    compute_score,
    score_breakdown,
    category_of,
    score_color,
    evaluate_terms,
    find_siblings,
    value_tier,
    wishlist_total,
    _default_config,
)
from jewelcms.services.repository import Repository


class FakeRepository:
    """In-memory stand-in exposing the scorer's read contract."""

    def __init__(self, products=(), leads=()):
        self.products = list(products)
        self.leads = list(leads)
        self.product_reads = 0
        self.lead_reads = 0

    def get_all_products(self):
        self.product_reads += 1
        return list(self.products)

    def get_all_leads(self):
        self.lead_reads += 1
        return list(self.leads)


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config_cache():
    """Reset the module-level rule table cache between tests."""
    import jewelcms.services.lead_scoring as mod
    mod._scoring_config = None
    yield
    mod._scoring_config = None


def _lead(**overrides):
    defaults = dict(id='lead-new', name='Ana', email='ana@example.com',
                    source=LeadSource.WEBSITE.value, status=LeadStatus.NEW.value)
    defaults.update(overrides)
    return Lead(**defaults)


def _products(*prices):
    return [Product(id=f'p{i}', sku=f'SKU{i}', name=f'Item {i}', price=price)
            for i, price in enumerate(prices, 1)]


def _wishlist(*product_ids):
    return Wishlist(id='wl-1', items=[WishlistItem(product_id=pid) for pid in product_ids])


# ── load_scoring_config ──────────────────────────────────────────────────────

class TestLoadScoringConfig:
    """load_scoring_config() loads YAML with cache and fallback."""

    def test_shipped_yaml_matches_defaults(self):
        cfg = load_scoring_config()
        default = _default_config()
        for key in default:
            if key != 'version':
                assert cfg[key] == default[key], key

    def test_falls_back_to_defaults_when_yaml_missing(self):
        with patch('jewelcms.services.lead_scoring.os.path.join', return_value='/nonexistent/path.yaml'):
            cfg = load_scoring_config()
        assert cfg['version'] == 'default'
        assert cfg['phone'] == 10

    def test_falls_back_on_malformed_yaml(self, tmp_path):
        config_file = tmp_path / 'scoring_config.yaml'
        config_file.write_text("invalid: yaml: content: [[[")
        with patch('jewelcms.services.lead_scoring.os.path.join', return_value=str(config_file)):
            cfg = load_scoring_config()
        assert cfg['version'] == 'default'

    @pytest.mark.parametrize('content', ['', '~\n', '- 1\n- 2\n'])
    def test_falls_back_when_yaml_is_not_a_mapping(self, tmp_path, content):
        config_file = tmp_path / 'scoring_config.yaml'
        config_file.write_text(content)
        with patch('jewelcms.services.lead_scoring.os.path.join', return_value=str(config_file)):
            cfg = load_scoring_config()
        score = compute_score(_lead(phone='555'), repo=FakeRepository())
        assert cfg['version'] == 'default'
        assert score == 10

    def test_partial_yaml_keeps_default_rules(self, tmp_path):
        config_file = tmp_path / 'scoring_config.yaml'
        config_file.write_text("version: 'partial'\nphone: 12\ndetailed_message:\n  points: 6\n")
        with patch('jewelcms.services.lead_scoring.os.path.join', return_value=str(config_file)):
            cfg = load_scoring_config()
        score = compute_score(
            _lead(phone='555', message='x' * 21, utm_source='google'),
            repo=FakeRepository(),
        )
        assert cfg['version'] == 'partial'
        assert cfg['detailed_message'] == {'points': 6, 'min_length': 20}
        assert cfg['max_score'] == 100
        assert score == 12 + 6 + 5

    def test_caches_config_after_first_load(self, tmp_path):
        config_file = tmp_path / 'scoring_config.yaml'
        config_file.write_text("version: 'cached'\n")
        with patch('jewelcms.services.lead_scoring.os.path.join', return_value=str(config_file)):
            first = load_scoring_config()
            config_file.write_text("version: 'new'\n")
            second = load_scoring_config()
        assert first is second
        assert second['version'] == 'cached'


# ── Example scenarios ────────────────────────────────────────────────────────

class TestScenarios:

    def test_bare_lead_scores_zero_and_is_cold(self):
        repo = FakeRepository()
        score = compute_score(_lead(), repo=repo)
        assert score == 0
        assert category_of(score) == LeadCategory.COLD

    def test_engaged_wishlist_lead_is_hot(self):
        repo = FakeRepository(products=_products(400, 500, 300))
        lead = _lead(
            phone='+1-876-5550100',
            message='x' * 25,
            source=LeadSource.WISHLIST.value,
        )
        score = compute_score(lead, _wishlist('p1', 'p2', 'p3'), repo=repo)
        # 10 phone + 10 message + 5 source + 30 items + 15 value band
        assert score == 70
        assert category_of(score) == LeadCategory.HOT

    def test_customer_with_converted_sibling(self):
        siblings = [
            _lead(id='old-1', email='first@example.com', customer_id='cust-1', status='CONVERTED'),
            _lead(id='old-2', email='second@example.com', customer_id='cust-1', status='LOST'),
        ]
        repo = FakeRepository(leads=siblings)
        lead = _lead(email='third@example.com', customer_id='cust-1')
        # 8 account + min(2*3, 7) + 10 conversion
        assert compute_score(lead, repo=repo) == 24

    def test_large_wishlist_caps_both_wishlist_terms(self):
        repo = FakeRepository(products=_products(10000, 10000, 10000, 10000, 10000))
        score = compute_score(_lead(), _wishlist('p1', 'p2', 'p3', 'p4', 'p5'), repo=repo)
        assert score == 70

    def test_shared_email_without_customer_ids_counts_both_ways(self):
        first = _lead(id='a', email='same@example.com')
        second = _lead(id='b', email='same@example.com')
        repo = FakeRepository(leads=[first, second])
        assert compute_score(first, repo=repo) == 3
        assert compute_score(second, repo=repo) == 3


# ── Individual terms ─────────────────────────────────────────────────────────

class TestWishlistTerms:

    def test_empty_wishlist_contributes_nothing(self):
        repo = FakeRepository(products=_products(5000))
        assert compute_score(_lead(), _wishlist(), repo=repo) == 0
        assert repo.product_reads == 0

    @pytest.mark.parametrize('count,expected', [(1, 10), (2, 20), (3, 30), (4, 40), (5, 40), (9, 40)])
    def test_item_term_saturates_at_four(self, count, expected):
        repo = FakeRepository(products=[Product(id='free', sku='F', name='Free', price=0)])
        wishlist = _wishlist(*['free'] * count)
        assert compute_score(_lead(), wishlist, repo=repo) == expected

    def test_item_term_is_monotonic(self):
        repo = FakeRepository()
        scores = [compute_score(_lead(), _wishlist(*['gone'] * n), repo=repo) for n in range(1, 8)]
        assert scores == sorted(scores)

    @pytest.mark.parametrize('total,points', [
        (0.01, 5), (499.99, 5), (500, 10), (999.99, 10), (1000, 15), (1999, 15),
        (2000, 20), (4999, 20), (5000, 25), (9999.99, 25), (10000, 30), (1_000_000, 30),
    ])
    def test_value_step_table(self, total, points):
        repo = FakeRepository(products=[Product(id='p', sku='S', name='N', price=total)])
        # one item → 10 from the item term
        assert compute_score(_lead(), _wishlist('p'), repo=repo) == 10 + points

    def test_zero_total_adds_no_value_points(self):
        repo = FakeRepository(products=[Product(id='p', sku='S', name='N', price=0)])
        assert compute_score(_lead(), _wishlist('p'), repo=repo) == 10

    def test_deleted_product_prices_as_zero(self):
        repo = FakeRepository(products=_products(600))
        assert wishlist_total(_wishlist('p1', 'deleted'), repo.get_all_products()) == 600
        assert compute_score(_lead(), _wishlist('p1', 'deleted'), repo=repo) == 20 + 10


class TestContactTerms:

    def test_phone_adds_ten(self):
        assert compute_score(_lead(phone='555-0100'), repo=FakeRepository()) == 10

    def test_empty_phone_adds_nothing(self):
        assert compute_score(_lead(phone=''), repo=FakeRepository()) == 0

    def test_message_of_exactly_twenty_chars_does_not_count(self):
        assert compute_score(_lead(message='x' * 20), repo=FakeRepository()) == 0

    def test_message_of_twenty_one_chars_counts(self):
        assert compute_score(_lead(message='x' * 21), repo=FakeRepository()) == 10

    def test_wishlist_source_enum_member(self):
        assert compute_score(_lead(source=LeadSource.WISHLIST), repo=FakeRepository()) == 5

    @pytest.mark.parametrize('source', ['wishlist', 'WEBSITE', 'CONTACT_FORM'])
    def test_other_sources_add_nothing(self, source):
        assert compute_score(_lead(source=source), repo=FakeRepository()) == 0

    @pytest.mark.parametrize('utm', [{'utm_source': 'google'}, {'utm_campaign': 'spring'},
                                     {'utm_source': 'ig', 'utm_campaign': 'x'}])
    def test_campaign_tracking(self, utm):
        assert compute_score(_lead(**utm), repo=FakeRepository()) == 5

    def test_utm_medium_alone_does_not_count(self):
        assert compute_score(_lead(utm_medium='cpc'), repo=FakeRepository()) == 0


class TestCustomerTerms:

    def test_lead_customer_id_adds_account_points(self):
        assert compute_score(_lead(customer_id='cust-1'), repo=FakeRepository()) == 8

    def test_explicit_customer_id_overrides_lead(self):
        other = _lead(id='old', email='someone@example.com', customer_id='cust-2')
        repo = FakeRepository(leads=[other])
        # override resolves cust-2 → account + one sibling
        assert compute_score(_lead(customer_id='cust-1'), customer_id='cust-2', repo=repo) == 8 + 3

    def test_customer_siblings_ignored_without_resolved_customer(self):
        other = _lead(id='old', email='someone@example.com', customer_id='cust-1')
        repo = FakeRepository(leads=[other])
        assert compute_score(_lead(), repo=repo) == 0

    def test_self_is_excluded_from_siblings(self):
        lead = _lead(id='same', customer_id='cust-1', status='CONVERTED')
        repo = FakeRepository(leads=[lead])
        assert compute_score(lead, repo=repo) == 8

    @pytest.mark.parametrize('count,points', [(1, 3), (2, 6), (3, 7), (10, 7)])
    def test_repeat_bonus_capped_at_seven(self, count, points):
        leads = [_lead(id=f'old-{i}') for i in range(count)]
        assert compute_score(_lead(), repo=FakeRepository(leads=leads)) == points

    def test_unrelated_conversion_ignored(self):
        repo = FakeRepository(leads=[_lead(id='x', email='other@example.com', status='CONVERTED')])
        assert compute_score(_lead(), repo=repo) == 0

    def test_converted_sibling_by_email(self):
        repo = FakeRepository(leads=[_lead(id='x', status=LeadStatus.CONVERTED.value)])
        assert compute_score(_lead(), repo=repo) == 3 + 10

    def test_find_siblings_or_join(self):
        lead = _lead(customer_id='cust-1')
        by_customer = _lead(id='1', email='x@example.com', customer_id='cust-1')
        by_email = _lead(id='2', customer_id='cust-9')
        neither = _lead(id='3', email='y@example.com')
        found = find_siblings(lead, [by_customer, by_email, neither, lead], 'cust-1')
        assert [s.id for s in found] == ['1', '2']

    def test_missing_email_never_matches(self):
        # leads without an email are not siblings of each other
        lead = _lead(email=None)
        assert find_siblings(lead, [_lead(id='x', email=None)]) == []


# ── Clamp / determinism ──────────────────────────────────────────────────────

class TestBounds:

    def _maxed(self):
        products = _products(5000, 5000, 5000, 5000)
        leads = [_lead(id=f'old-{i}', customer_id='cust-1', status='CONVERTED') for i in range(3)]
        lead = _lead(phone='555', message='m' * 40, source='WISHLIST',
                     utm_source='fb', customer_id='cust-1')
        return lead, _wishlist('p1', 'p2', 'p3', 'p4'), FakeRepository(products=products, leads=leads)

    def test_score_clamped_to_100(self):
        lead, wishlist, repo = self._maxed()
        assert compute_score(lead, wishlist, repo=repo) == 100

    def test_uncapped_breakdown_exceeds_100(self):
        lead, wishlist, repo = self._maxed()
        assert sum(score_breakdown(lead, wishlist, repo=repo).values()) == 125

    def test_deterministic(self):
        lead, wishlist, repo = self._maxed()
        results = {compute_score(lead, wishlist, repo=repo) for _ in range(5)}
        assert results == {100}


# ── score_breakdown ──────────────────────────────────────────────────────────

class TestScoreBreakdown:

    def test_only_triggered_terms_present(self):
        breakdown = score_breakdown(_lead(phone='555'), repo=FakeRepository())
        assert breakdown == {'Phone Provided': 10}

    def test_empty_for_bare_lead(self):
        assert score_breakdown(_lead(), repo=FakeRepository()) == {}

    def test_labels_for_wishlist_lead(self):
        repo = FakeRepository(products=_products(400, 500, 300))
        lead = _lead(phone='+1', message='x' * 25, source='WISHLIST')
        breakdown = score_breakdown(lead, _wishlist('p1', 'p2', 'p3'), repo=repo)
        assert breakdown == {
            'Wishlist Items': 30,
            'Medium Value Wishlist': 15,
            'Phone Provided': 10,
            'Detailed Message': 10,
            'Wishlist Submission': 5,
        }

    @pytest.mark.parametrize('price,label', [
        (12000, 'High Value Wishlist'), (6000, 'High Value Wishlist'),
        (2500, 'Medium Value Wishlist'), (1500, 'Medium Value Wishlist'),
        (700, 'Low Value Wishlist'), (50, 'Low Value Wishlist'),
    ])
    def test_value_band_labels(self, price, label):
        repo = FakeRepository(products=[Product(id='p', sku='S', name='N', price=price)])
        assert label in score_breakdown(_lead(), _wishlist('p'), repo=repo)

    def test_customer_history_labels(self):
        repo = FakeRepository(leads=[_lead(id='old', customer_id='cust-1', status='CONVERTED')])
        breakdown = score_breakdown(_lead(customer_id='cust-1'), repo=repo)
        assert breakdown == {'Customer Account': 8, 'Repeat Customer': 3, 'Previous Conversion': 10}

    @pytest.mark.parametrize('overrides', [
        {},
        {'phone': '555', 'utm_campaign': 'fall'},
        {'message': 'I would like to book a viewing', 'source': 'WISHLIST'},
        {'customer_id': 'cust-1'},
        {'email': 'repeat@example.com', 'customer_id': 'cust-1', 'phone': '1'},
    ])
    def test_sums_to_compute_score(self, overrides):
        products = _products(1200, 800)
        leads = [
            _lead(id='h1', email='repeat@example.com', status='CONVERTED'),
            _lead(id='h2', customer_id='cust-1'),
        ]
        repo = FakeRepository(products=products, leads=leads)
        lead = _lead(**overrides)
        wishlist = _wishlist('p1', 'p2')
        assert sum(score_breakdown(lead, wishlist, repo=repo).values()) == \
            compute_score(lead, wishlist, repo=repo)

    def test_ignores_explicit_customer_override(self):
        repo = FakeRepository()
        lead = _lead()
        assert compute_score(lead, customer_id='cust-1', repo=repo) == 8
        assert score_breakdown(lead, repo=repo) == {}


# ── evaluate_terms / value_tier ──────────────────────────────────────────────

class TestEvaluateTerms:

    def test_term_keys_in_rule_order(self):
        repo = FakeRepository(products=_products(100))
        lead = _lead(phone='1', message='y' * 30, source='WISHLIST', utm_source='g', customer_id='c')
        keys = [t.key for t in evaluate_terms(lead, _wishlist('p1'), 'c', repo)]
        assert keys == ['wishlist_items', 'wishlist_value', 'phone', 'detailed_message',
                        'wishlist_source', 'campaign', 'customer_account']

    def test_value_tier_none_for_zero(self):
        assert value_tier(0, _default_config()['wishlist_value_tiers']) is None


# ── category_of / score_color ────────────────────────────────────────────────

class TestCategory:

    @pytest.mark.parametrize('score,category', [
        (0, LeadCategory.COLD), (30, LeadCategory.COLD),
        (31, LeadCategory.WARM), (60, LeadCategory.WARM),
        (61, LeadCategory.HOT), (100, LeadCategory.HOT),
    ])
    def test_band_edges(self, score, category):
        assert category_of(score) == category

    def test_partitions_full_range(self):
        bands = [category_of(s) for s in range(101)]
        assert bands.count(LeadCategory.COLD) == 31
        assert bands.count(LeadCategory.WARM) == 30
        assert bands.count(LeadCategory.HOT) == 40

    @pytest.mark.parametrize('score,category', [(-5, LeadCategory.COLD), (250, LeadCategory.HOT)])
    def test_out_of_range_is_clamped(self, score, category):
        assert category_of(score) == category

    def test_display_values(self):
        assert category_of(75).value == 'Hot Lead'

    @pytest.mark.parametrize('score,color', [(10, 'blue'), (45, 'yellow'), (90, 'red')])
    def test_score_color(self, score, color):
        assert score_color(score) == color


# ── Against the SQLAlchemy repository ────────────────────────────────────────

class TestWithDatabase:

    def test_scores_against_persisted_records(self, db_session, make_product, make_lead, make_wishlist):
        ring = make_product(sku='R1', price=1500)
        watch = make_product(sku='W1', price=4000)
        wishlist = make_wishlist([ring.id, watch.id])
        make_lead(email='vip@example.com', status='CONVERTED')

        lead = _lead(id=None, email='vip@example.com', source='WISHLIST')
        score = compute_score(lead, wishlist, repo=Repository(db_session))
        # 20 items + 25 value + 5 source + 3 sibling + 10 conversion
        assert score == 63

    def test_opens_its_own_session_when_repo_omitted(self, make_lead):
        make_lead(email='ana@example.com')
        assert compute_score(_lead()) == 3

    def test_wishlist_edit_after_creation_does_not_rescore(self, db_session, make_product, make_wishlist, make_lead):
        ring = make_product(price=800)
        wishlist = make_wishlist([ring.id])
        lead = make_lead(email='new@example.com', wishlist_id=wishlist.id)
        lead.score = compute_score(lead, wishlist, repo=Repository(db_session))
        db_session.commit()
        stored = lead.score

        wishlist.items.append(WishlistItem(product_id=ring.id))
        db_session.commit()
        db_session.refresh(lead)
        assert lead.score == stored == 20
