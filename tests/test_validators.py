"""
Tests for input validation utilities.
"""

from utils.validators import (
    validate_email,
    validate_contact_number,
    validate_date_format,
    validate_pricing_tiers,
    sanitize_input
)


class TestValidateEmail:
    """Tests for email validation."""

    def test_valid_email(self):
        """Test valid email formats."""
        assert validate_email('user@example.com') is True
        assert validate_email('user.name@example.com') is True
        assert validate_email('user+tag@example.co.uk') is True

    def test_invalid_email(self):
        """Test invalid email formats."""
        assert validate_email('') is False
        assert validate_email(None) is False
        assert validate_email('invalid') is False
        assert validate_email('missing@domain') is False
        assert validate_email('spaces in@email.com') is False


class TestValidateContactNumber:
    """Tests for contact number validation."""

    def test_valid_numbers(self):
        assert validate_contact_number('09171234567') is True
        assert validate_contact_number('+63 917 123 4567') is True
        assert validate_contact_number('(02) 8123-4567') is True

    def test_invalid_numbers(self):
        assert validate_contact_number('') is False
        assert validate_contact_number(None) is False
        assert validate_contact_number('12345') is False  # Too short
        assert validate_contact_number('call me maybe') is False
        assert validate_contact_number('+1234567890123456') is False  # Too long


class TestValidateDateFormat:
    """Tests for date format validation."""

    def test_valid_date_format(self):
        assert validate_date_format('2025-01-15') is True
        assert validate_date_format('2020-02-29') is True  # Leap year

    def test_invalid_date_format(self):
        assert validate_date_format('15-01-2025') is False
        assert validate_date_format('2025/01/15') is False
        assert validate_date_format('2021-02-29') is False  # Not leap year
        assert validate_date_format('') is False
        assert validate_date_format(None) is False


class TestValidatePricingTiers:
    """Tests for tier table shape checks."""

    def test_valid_table(self):
        is_valid, msg = validate_pricing_tiers([
            {'min_days': 4, 'max_days': 7, 'price_per_day': 80},
            {'min_days': 1, 'max_days': 3, 'price_per_day': 100},
            {'min_days': 8, 'max_days': None, 'price_per_day': 60},
        ])
        assert is_valid is True
        assert msg == ''

    def test_bounded_last_tier_is_allowed(self):
        is_valid, _ = validate_pricing_tiers([
            {'min_days': 1, 'max_days': 30, 'price_per_day': 50},
        ])
        assert is_valid is True

    def test_empty_table(self):
        is_valid, msg = validate_pricing_tiers([])
        assert is_valid is False
        assert 'At least one' in msg

    def test_must_start_at_day_one(self):
        is_valid, msg = validate_pricing_tiers([
            {'min_days': 2, 'max_days': None, 'price_per_day': 50},
        ])
        assert is_valid is False
        assert 'gap' in msg

    def test_overlap(self):
        is_valid, msg = validate_pricing_tiers([
            {'min_days': 1, 'max_days': 5, 'price_per_day': 100},
            {'min_days': 4, 'max_days': None, 'price_per_day': 60},
        ])
        assert is_valid is False
        assert 'overlap' in msg

    def test_negative_price(self):
        is_valid, msg = validate_pricing_tiers([
            {'min_days': 1, 'max_days': None, 'price_per_day': -1},
        ])
        assert is_valid is False
        assert 'price_per_day' in msg

    def test_max_before_min(self):
        is_valid, _ = validate_pricing_tiers([
            {'min_days': 1, 'max_days': 0, 'price_per_day': 10},
        ])
        assert is_valid is False


class TestSanitizeInput:
    """Tests for input sanitization."""

    def test_trim_whitespace(self):
        assert sanitize_input('  hello  ') == 'hello'
        assert sanitize_input('\n\ttext\n') == 'text'

    def test_limit_length(self):
        assert sanitize_input('hello world', max_length=5) == 'hello'
        assert sanitize_input('short', max_length=10) == 'short'

    def test_empty_input(self):
        assert sanitize_input('') == ''
        assert sanitize_input(None) == ''
