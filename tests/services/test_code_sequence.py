"""Tests for CodeSequenceService -- unit codes from locked counter rows."""

import pytest

from stock_kernel.services.code_sequence_service import CodeSequenceService


class TestNextCode:

    def test_first_codes_of_category(self, codes):
        assert [codes.next_code("1000") for _ in range(3)] == ["1001", "1002", "1003"]

    def test_categories_are_independent(self, codes):
        codes.next_code("1000")
        codes.next_code("1000")

        assert codes.next_code("2000") == "2001"
        assert codes.next_code("1000") == "1003"

    def test_default_category(self, codes):
        assert codes.next_code() == "1001"

    def test_peek_does_not_consume(self, codes):
        assert codes.peek_code("1000") == "1001"
        assert codes.peek_code("1000") == "1001"
        assert codes.next_code("1000") == "1001"
        assert codes.peek_code("1000") == "1002"

    def test_counter_shared_across_service_instances(self, session, codes):
        codes.next_code("1000")
        assert CodeSequenceService(session).next_code("1000") == "1002"

    @pytest.mark.parametrize("category", ["ABC", "-1", ""])
    def test_non_numeric_category_rejected(self, codes, category):
        with pytest.raises(ValueError):
            codes.next_code(category)


class TestCodeGenerator:

    def test_generator_issues_successive_codes(self, codes):
        gen = codes.code_generator("5000")
        assert [gen(), gen()] == ["5001", "5002"]

    def test_generator_validates_category_eagerly(self, codes):
        with pytest.raises(ValueError):
            codes.code_generator("tools")
