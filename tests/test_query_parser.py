import unittest

from parts_search.models import ParsedQuery, SearchType, VehicleInfo
from parts_search.parsing.query_parser import QueryParser, looks_like_part_number
from tests.fixtures import fixed_clock


class QueryParserTests(unittest.TestCase):
    def setUp(self):
        self.parser = QueryParser(clock=fixed_clock)

    def test_vehicle_only_query(self):
        parsed = self.parser.parse("2016 toyota rav4")
        self.assertEqual(parsed.vehicle_info, VehicleInfo(year="2016", make="toyota", model="rav-4"))
        self.assertTrue(parsed.has_vehicle_info)
        self.assertFalse(parsed.has_part_number)
        self.assertEqual(parsed.product_terms, ())
        self.assertEqual(parsed.search_type, SearchType.VEHICLE_COMPATIBILITY)

    def test_empty_input_gives_canonical_empty_result(self):
        for raw in ("", "   ", None):
            parsed = self.parser.parse(raw)
            self.assertEqual(parsed, ParsedQuery.empty())
            self.assertEqual(parsed.search_type, SearchType.GENERAL)
            self.assertFalse(parsed.has_vehicle_info)

    def test_punctuation_only_input_gives_canonical_empty_result(self):
        for raw in ("!!! ???", "- / ..."):
            parsed = self.parser.parse(raw)
            self.assertEqual(parsed, ParsedQuery.empty())
            self.assertEqual(parsed.search_type, SearchType.GENERAL)

    def test_punctuation_tokens_are_dropped(self):
        parsed = self.parser.parse("brake !!! pads")
        self.assertEqual(parsed.product_terms, ("brake", "pads"))

    def test_part_number_query(self):
        parsed = self.parser.parse("ABC-1234")
        self.assertEqual(parsed.part_numbers, ("abc-1234",))
        self.assertTrue(parsed.has_part_number)
        self.assertEqual(parsed.search_type, SearchType.PART_NUMBER)
        self.assertTrue(parsed.vehicle_info.is_empty)

    def test_parsing_is_idempotent_on_normalized_queries(self):
        queries = [
            "2016 Toyota RAV4 brake pads",
            "  chevy   Silverado 2019 ",
            "ABC-1234 oil filter",
            "for the",
            "2021 land rover wiper blades",
        ]
        for raw in queries:
            first = self.parser.parse(raw)
            second = self.parser.parse(first.original_query)
            self.assertEqual(first, second, raw)

    def test_vehicle_with_product_terms(self):
        parsed = self.parser.parse("2016 Toyota RAV4 brake pads")
        self.assertEqual(parsed.vehicle_info.model, "rav-4")
        self.assertEqual(parsed.product_terms, ("brake", "pads"))
        self.assertEqual(parsed.original_query, "2016 toyota rav4 brake pads")
        self.assertEqual(parsed.search_type, SearchType.VEHICLE_WITH_PRODUCT)

    def test_make_aliases(self):
        self.assertEqual(self.parser.parse("chevy silverado").vehicle_info.make, "chevrolet")
        self.assertEqual(self.parser.parse("vw jetta").vehicle_info.make, "volkswagen")
        self.assertEqual(self.parser.parse("mercedes c-class").vehicle_info.make, "mercedes-benz")

    def test_multi_word_make(self):
        parsed = self.parser.parse("2021 land rover wiper blades")
        self.assertEqual(parsed.vehicle_info.make, "land rover")
        self.assertIsNone(parsed.vehicle_info.model)
        self.assertEqual(parsed.product_terms, ("wiper", "blades"))

    def test_model_shorthand_normalization(self):
        expected = {
            "honda crv": "cr-v",
            "honda hrv": "hr-v",
            "toyota chr": "c-hr",
            "ford f150": "f-150",
            "ford f250": "f-250",
            "ford f350": "f-350",
            "toyota rav 4": "rav-4",
        }
        for raw, model in expected.items():
            self.assertEqual(self.parser.parse(raw).vehicle_info.model, model, raw)

    def test_multi_word_models(self):
        self.assertEqual(self.parser.parse("2020 hyundai santa fe").vehicle_info.model, "santa fe")
        self.assertEqual(self.parser.parse("2021 tesla model 3").vehicle_info.model, "model 3")

    def test_year_outside_bounds_is_not_a_year(self):
        parsed = self.parser.parse("1985 ford mustang")
        self.assertIsNone(parsed.vehicle_info.year)
        self.assertEqual(parsed.vehicle_info.model, "mustang")
        self.assertEqual(parsed.part_numbers, ("1985",))

        # Reference year 2024 allows up to 2026
        self.assertEqual(self.parser.parse("2026 honda civic").vehicle_info.year, "2026")
        self.assertIsNone(self.parser.parse("2027 honda civic").vehicle_info.year)

    def test_known_model_wins_over_part_number_shape(self):
        parsed = self.parser.parse("toyota 4runner")
        self.assertEqual(parsed.vehicle_info.model, "4runner")
        self.assertEqual(parsed.part_numbers, ())

    def test_alphanumeric_unknown_token_is_reserved_for_part_numbers(self):
        parsed = self.parser.parse("toyota abc123 filter")
        self.assertIsNone(parsed.vehicle_info.model)
        self.assertEqual(parsed.part_numbers, ("abc123",))
        self.assertEqual(parsed.product_terms, ("filter",))
        self.assertEqual(parsed.search_type, SearchType.PART_NUMBER)

    def test_known_model_without_year_or_make(self):
        parsed = self.parser.parse("pilot brake pads")
        self.assertEqual(parsed.vehicle_info, VehicleInfo(model="pilot"))
        self.assertEqual(parsed.product_terms, ("brake", "pads"))
        self.assertEqual(parsed.search_type, SearchType.VEHICLE_WITH_PRODUCT)

        self.assertEqual(self.parser.parse("2015 honda pilot").vehicle_info.model, "pilot")

    def test_first_remaining_word_becomes_model(self):
        self.assertEqual(self.parser.parse("2003 subaru baja").vehicle_info.model, "baja")

        parsed = self.parser.parse("ceramic brake pads")
        self.assertEqual(parsed.vehicle_info.model, "ceramic")
        self.assertEqual(parsed.product_terms, ("brake", "pads"))
        self.assertEqual(parsed.search_type, SearchType.VEHICLE_WITH_PRODUCT)

        # Part terms are skipped when looking for the model
        parsed = self.parser.parse("wiper blades")
        self.assertFalse(parsed.has_vehicle_info)
        self.assertEqual(parsed.search_type, SearchType.PRODUCT_NAME)

    def test_known_model_without_make(self):
        parsed = self.parser.parse("brake pads for my civic")
        self.assertEqual(parsed.vehicle_info, VehicleInfo(model="civic"))
        self.assertEqual(parsed.product_terms, ("brake", "pads"))
        self.assertEqual(parsed.search_type, SearchType.VEHICLE_WITH_PRODUCT)

    def test_stopwords_and_single_characters_dropped(self):
        parsed = self.parser.parse("a set of x wipers")
        self.assertEqual(parsed.product_terms, ("set", "wipers"))

    def test_reference_year_comes_from_clock(self):
        from datetime import datetime

        parser = QueryParser(clock=lambda: datetime(2010, 1, 1))
        self.assertIsNone(parser.parse("2016 toyota camry").vehicle_info.year)
        self.assertEqual(parser.parse("2012 toyota camry").vehicle_info.year, "2012")

    def test_part_number_shape(self):
        self.assertTrue(looks_like_part_number("bp-1001"))
        self.assertFalse(looks_like_part_number("a1"))
        self.assertFalse(looks_like_part_number("brakes"))


if __name__ == "__main__":
    unittest.main()
