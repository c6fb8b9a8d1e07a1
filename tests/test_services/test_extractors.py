"""Tests for market data value extractors."""
import json

from app.services.providers.extractors import (
    ANY_RUPEE_PATTERN,
    HEADLINE_PATTERN,
    PER_GRAM_TABLE_PATTERN,
    JSONFieldExtractor,
    RegexExtractor,
    default_gold_extractors,
    in_band,
    page_text,
    parse_amount,
)

BAND = (5000.0, 20000.0)

RATE_TABLE_PAGE = """
<html><body>
<h1>24K Gold Rate in Hyderabad today is &#8377;9,912 per gram</h1>
<table>
  <tr><th>Gram</th><th>24 Carat Gold Today</th></tr>
  <tr><td>1 Gram</td><td>&#8377;9,840</td></tr>
  <tr><td>10 Gram</td><td>&#8377;98,400</td></tr>
</table>
</body></html>
"""


class TestHelpers:
    def test_page_text_strips_tags_and_entities(self):
        assert page_text('<p>Rate:&nbsp;<b>&#8377;9,840</b></p>').strip() == 'Rate: ₹9,840'

    def test_parse_amount(self):
        assert parse_amount('9,840.50') == 9840.5
        assert parse_amount('abc') is None

    def test_in_band(self):
        assert in_band(5000, BAND)
        assert in_band(20000, BAND)
        assert not in_band(4999.99, BAND)
        assert not in_band(None, BAND)


class TestJSONFieldExtractor:
    def test_reads_field(self):
        extractor = JSONFieldExtractor('price_gram_24k')
        body = json.dumps({'price_gram_24k': 9876.54, 'price': 307000})
        assert extractor.extract(body, BAND) == 9876.54
        assert extractor.name == 'json:price_gram_24k'

    def test_out_of_band_rejected(self):
        extractor = JSONFieldExtractor('price_gram_24k')
        assert extractor.extract(json.dumps({'price_gram_24k': 98765}), BAND) is None

    def test_non_json_body(self):
        assert JSONFieldExtractor('price_gram_24k').extract('<html></html>', BAND) is None

    def test_missing_field(self):
        assert JSONFieldExtractor('price_gram_24k').extract('{"price": 1}', BAND) is None


class TestRegexExtractors:
    def test_per_gram_table(self):
        extractor = RegexExtractor('per-gram-table', PER_GRAM_TABLE_PATTERN)
        assert extractor.extract(RATE_TABLE_PAGE, BAND) == 9840.0

    def test_headline(self):
        extractor = RegexExtractor('headline', HEADLINE_PATTERN)
        assert extractor.extract(RATE_TABLE_PAGE, BAND) == 9912.0

    def test_any_rupee_skips_out_of_band_amounts(self):
        extractor = RegexExtractor('any-rupee-amount', ANY_RUPEE_PATTERN)
        page = '<p>Making charges Rs. 500</p><p>Rate INR 10,050</p>'
        assert extractor.extract(page, BAND) == 10050.0

    def test_no_match(self):
        extractor = RegexExtractor('headline', HEADLINE_PATTERN)
        assert extractor.extract('<p>Silver rate today</p>', BAND) is None


def test_default_order_is_strictest_first():
    names = [e.name for e in default_gold_extractors()]
    assert names == ['goldapi-json', 'per-gram-table', 'headline', 'any-rupee-amount']
