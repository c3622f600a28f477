"""
Tests for company name normalisation and candidate generation.
"""

import unittest

from domain_finder.candidates import (
    build_synonyms,
    clean_company_name,
    company_words,
    generate_candidates,
    is_valid_hostname,
    looks_like_company_name,
)

TLDS = [".com", ".net", ".io"]


class TestCleanCompanyName(unittest.TestCase):
    """Tests for suffix and punctuation stripping."""

    def test_strips_corporate_suffixes(self):
        """Known suffixes are removed as whole words."""
        self.assertEqual(clean_company_name("OpenAI Inc"), "openai")
        self.assertEqual(clean_company_name("Acme Widgets LLC"), "acme widgets")
        self.assertEqual(clean_company_name("Siemens GmbH"), "siemens")
        self.assertEqual(clean_company_name("Barclays PLC"), "barclays")
        self.assertEqual(clean_company_name("Foo Co. Bar Corp."), "foo bar")

    def test_suffix_inside_word_is_kept(self):
        """Suffixes only match whole words."""
        self.assertEqual(clean_company_name("Cobalt Incubator"), "cobalt incubator")
        self.assertEqual(clean_company_name("Salesforce"), "salesforce")

    def test_strips_punctuation(self):
        """Characters outside a-z, 0-9 and whitespace disappear."""
        self.assertEqual(clean_company_name("AT&T"), "att")
        self.assertEqual(clean_company_name("Coca-Cola Co."), "cocacola")
        self.assertEqual(clean_company_name("  3M  "), "3m")

    def test_empty_input(self):
        self.assertEqual(clean_company_name(""), "")
        self.assertEqual(company_words("Inc."), [])
        self.assertEqual(company_words("!!!"), [])


class TestGenerateCandidates(unittest.TestCase):
    """Tests for domain candidate generation."""

    def test_openai_example(self):
        """The classic example yields openai.com first."""
        candidates = generate_candidates("OpenAI Inc", tlds=TLDS)
        self.assertEqual(candidates[0], "openai.com")
        self.assertEqual(candidates, ["openai.com", "openai.net", "openai.io"])

    def test_multi_word_forms(self):
        """Joined, hyphenated and first-word forms are crossed with each TLD."""
        candidates = generate_candidates("Deutsche Bank AG", tlds=[".com", ".de"])
        self.assertEqual(candidates, [
            "deutschebankag.com", "deutsche-bank-ag.com", "deutsche.com",
            "deutschebankag.de", "deutsche-bank-ag.de", "deutsche.de",
        ])

    def test_no_duplicates(self):
        """Single-word names produce identical joined/hyphen forms only once."""
        candidates = generate_candidates("Stripe", tlds=TLDS)
        self.assertEqual(len(candidates), len(set(candidates)))
        self.assertEqual(len(candidates), len(TLDS))

    def test_joined_com_always_present(self):
        """Any name with an alphanumeric character yields <joined>.com."""
        for name in ["a", "Zzqxw Nonexistent Corp", "X-Y-Z", "Bank-e-Millie Afghan", "7 Eleven"]:
            joined = "".join(company_words(name))
            self.assertIn(joined + ".com", generate_candidates(name))

    def test_default_catalog_is_bounded(self):
        """The default catalog gives at most three forms per TLD."""
        candidates = generate_candidates("Zzqxw Nonexistent Corp")
        self.assertGreater(len(candidates), 25)
        self.assertLessEqual(len(candidates), 3 * 26)

    def test_empty_name_yields_nothing(self):
        self.assertEqual(generate_candidates(""), [])
        self.assertEqual(generate_candidates("   "), [])
        self.assertEqual(generate_candidates("LLC"), [])
        self.assertEqual(generate_candidates("&&&"), [])

    def test_deterministic(self):
        self.assertEqual(generate_candidates("Open AI"), generate_candidates("Open AI"))

    def test_overlong_forms_are_dropped(self):
        """Joined and hyphenated forms over 63 characters never become candidates."""
        name = "Industrial and Commercial Bank of China Limited Holdings International Group"
        candidates = generate_candidates(name, tlds=[".com", ".de"])
        self.assertEqual(candidates, ["industrial.com", "industrial.de"])
        for candidate in generate_candidates(name):
            self.assertTrue(is_valid_hostname(candidate), candidate)

    def test_single_overlong_word_yields_nothing(self):
        self.assertEqual(generate_candidates("x" * 70, tlds=TLDS), [])

    def test_hostname_length_limits(self):
        self.assertTrue(is_valid_hostname("a" * 63 + ".com"))
        self.assertFalse(is_valid_hostname("a" * 64 + ".com"))
        self.assertFalse(is_valid_hostname(".".join(["a" * 60] * 5)))
        self.assertFalse(is_valid_hostname("a..com"))
        self.assertFalse(is_valid_hostname(""))


class TestBuildSynonyms(unittest.TestCase):
    """Tests for the synonym set."""

    def test_multi_word(self):
        self.assertEqual(build_synonyms("Open AI Inc"), ["open ai", "open-ai", "openai", "open"])

    def test_single_word(self):
        self.assertEqual(build_synonyms("OpenAI Inc"), ["openai"])

    def test_never_empty(self):
        """Names without usable words fall back to the trimmed name."""
        self.assertEqual(build_synonyms("Inc"), ["inc"])
        self.assertTrue(build_synonyms("!!!"))
        self.assertTrue(build_synonyms(""))


class TestLooksLikeCompanyName(unittest.TestCase):
    """Tests for the list-noise filter."""

    def test_accepts_company_names(self):
        self.assertTrue(looks_like_company_name("Nokia"))
        self.assertTrue(looks_like_company_name("3M"))
        self.assertTrue(looks_like_company_name("  Bank-e-Millie Afghan "))

    def test_rejects_numbers_and_short_strings(self):
        self.assertFalse(looks_like_company_name(""))
        self.assertFalse(looks_like_company_name("   "))
        self.assertFalse(looks_like_company_name("19"))
        self.assertFalse(looks_like_company_name("X"))

    def test_rejects_blacklisted_substrings(self):
        self.assertFalse(looks_like_company_name("Economy of France"))
        self.assertFalse(looks_like_company_name("Companies portal"))
        self.assertFalse(looks_like_company_name("List of banks"))
        self.assertFalse(looks_like_company_name("Government of Chile"))
        self.assertFalse(looks_like_company_name("University of Oslo"))


if __name__ == "__main__":
    unittest.main()
