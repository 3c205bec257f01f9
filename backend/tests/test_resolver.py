"""Tests for masker.resolver — grouping mentions and numbering placeholders."""

from __future__ import annotations

import pytest

from masker.resolver import IdentityResolver
from masker.taxonomy import EntityCategory, FinancialSubtype
from schemas.entities import DetectedSpan, EntityGroup


@pytest.fixture
def resolver() -> IdentityResolver:
    return IdentityResolver()


def spans_for(text: str, *mentions: tuple[EntityCategory, str]) -> list[DetectedSpan]:
    """Build spans for *mentions*, each located after the previous one."""
    spans = []
    cursor = 0
    for category, value in mentions:
        start = text.index(value, cursor)
        spans.append(
            DetectedSpan(category=category, original_text=value, start=start, end=start + len(value))
        )
        cursor = start + len(value)
    return spans


def tokens_by_text(groups: list[EntityGroup]) -> dict[str, str]:
    return {
        span.original_text: group.placeholder_token
        for group in groups
        for span in group.members
    }


P = EntityCategory.PERSON_NAME
O = EntityCategory.ORGANIZATION


# -----------------------------------------------------------------------
# Exact and normalised matches
# -----------------------------------------------------------------------


class TestExactMatch:

    def test_repeated_mention_shares_group(self, resolver: IdentityResolver):
        text = "Jane Smith signed. Jane Smith paid."
        groups = resolver.resolve(spans_for(text, (P, "Jane Smith"), (P, "Jane Smith")))
        assert len(groups) == 1
        assert groups[0].placeholder_token == "[PERSON_NAME_1]"
        assert len(groups[0].members) == 2

    def test_case_insensitive(self, resolver: IdentityResolver):
        text = "JANE SMITH signed. Jane Smith paid."
        groups = resolver.resolve(spans_for(text, (P, "JANE SMITH"), (P, "Jane Smith")))
        assert len(groups) == 1

    def test_title_stripped(self, resolver: IdentityResolver):
        text = "Dr. Jane Smith signed. Jane Smith paid."
        groups = resolver.resolve(spans_for(text, (P, "Dr. Jane Smith"), (P, "Jane Smith")))
        assert len(groups) == 1

    def test_phone_formats_normalised(self, resolver: IdentityResolver):
        c = EntityCategory.PHONE_NUMBER
        text = "Call 555-1234 or 555 1234."
        groups = resolver.resolve(spans_for(text, (c, "555-1234"), (c, "555 1234")))
        assert len(groups) == 1

    def test_email_case_normalised(self, resolver: IdentityResolver):
        c = EntityCategory.EMAIL
        text = "Mail John@Example.com or john@example.com."
        groups = resolver.resolve(spans_for(text, (c, "John@Example.com"), (c, "john@example.com")))
        assert len(groups) == 1


# -----------------------------------------------------------------------
# Alias matching
# -----------------------------------------------------------------------


class TestAliasMatch:

    def test_first_name_joins_unique_full_name(self, resolver: IdentityResolver):
        text = "John Smith lives here. Contact John."
        groups = resolver.resolve(spans_for(text, (P, "John Smith"), (P, "John")))
        assert tokens_by_text(groups) == {
            "John Smith": "[PERSON_NAME_1]",
            "John": "[PERSON_NAME_1]",
        }

    def test_later_full_name_does_not_join_earlier_short_form(self, resolver: IdentityResolver):
        text = "Smith arrived. Later John Smith left."
        groups = resolver.resolve(spans_for(text, (P, "Smith"), (P, "John Smith")))
        assert len(groups) == 2

    def test_short_form_first_then_two_full_names(self, resolver: IdentityResolver):
        text = "Mr. Smith objected. Jane Smith and John Smith signed."
        groups = resolver.resolve(
            spans_for(text, (P, "Mr. Smith"), (P, "Jane Smith"), (P, "John Smith"))
        )
        assert tokens_by_text(groups) == {
            "Mr. Smith": "[PERSON_NAME_1]",
            "Jane Smith": "[PERSON_NAME_2]",
            "John Smith": "[PERSON_NAME_3]",
        }

    def test_ambiguous_short_form_gets_own_group(self, resolver: IdentityResolver):
        text = "John Smith and Mary Smith met. Smith left."
        groups = resolver.resolve(
            spans_for(text, (P, "John Smith"), (P, "Mary Smith"), (P, "Smith"))
        )
        assert tokens_by_text(groups) == {
            "John Smith": "[PERSON_NAME_1]",
            "Mary Smith": "[PERSON_NAME_2]",
            "Smith": "[PERSON_NAME_3]",
        }

    def test_shared_first_name_does_not_merge(self, resolver: IdentityResolver):
        text = "John Smith and John Doe met."
        groups = resolver.resolve(spans_for(text, (P, "John Smith"), (P, "John Doe")))
        assert len(groups) == 2

    def test_first_name_repeated_after_full_names(self, resolver: IdentityResolver):
        text = "John came. John Smith stayed. John Doe left. John waved."
        groups = resolver.resolve(
            spans_for(text, (P, "John"), (P, "John Smith"), (P, "John Doe"), (P, "John"))
        )
        assert [g.placeholder_token for g in groups] == [
            "[PERSON_NAME_1]",
            "[PERSON_NAME_2]",
            "[PERSON_NAME_3]",
        ]
        assert [s.start for s in groups[0].members] == [0, 45]

    def test_organisation_suffix_ignored(self, resolver: IdentityResolver):
        text = "Acme Industries Pvt. Ltd. agrees. Acme Industries shall pay."
        groups = resolver.resolve(
            spans_for(text, (O, "Acme Industries Pvt. Ltd."), (O, "Acme Industries"))
        )
        assert len(groups) == 1

    @pytest.mark.parametrize(
        "first, second",
        [("ABC Pvt Ltd", "ABC Holdings Ltd"), ("ABC Holdings Ltd", "ABC Pvt Ltd")],
    )
    def test_companies_sharing_a_word_stay_apart(
        self, resolver: IdentityResolver, first: str, second: str
    ):
        text = f"{first} sold its stake to {second}."
        groups = resolver.resolve(spans_for(text, (O, first), (O, second)))
        assert [g.placeholder_token for g in groups] == ["[ORGANIZATION_1]", "[ORGANIZATION_2]"]

    def test_no_alias_matching_for_numbers(self, resolver: IdentityResolver):
        c = EntityCategory.ID_NUMBER
        text = "IDs 1234 5678 9012 and 1234."
        groups = resolver.resolve(spans_for(text, (c, "1234 5678 9012"), (c, "1234")))
        assert len(groups) == 2

    def test_categories_never_merge(self, resolver: IdentityResolver):
        text = "Jordan signed for Jordan."
        spans = spans_for(text, (P, "Jordan"), (O, "Jordan"))
        groups = resolver.resolve(spans)
        assert [g.placeholder_token for g in groups] == ["[PERSON_NAME_1]", "[ORGANIZATION_1]"]


# -----------------------------------------------------------------------
# Ordinals
# -----------------------------------------------------------------------


class TestOrdinals:

    def test_numbered_by_first_appearance(self, resolver: IdentityResolver):
        text = "Bob met Alice. Bob paid Carol."
        groups = resolver.resolve(
            spans_for(text, (P, "Bob"), (P, "Alice"), (P, "Bob"), (P, "Carol"))
        )
        assert tokens_by_text(groups) == {
            "Bob": "[PERSON_NAME_1]",
            "Alice": "[PERSON_NAME_2]",
            "Carol": "[PERSON_NAME_3]",
        }

    def test_input_order_does_not_affect_numbering(self, resolver: IdentityResolver):
        text = "Bob met Alice."
        spans = spans_for(text, (P, "Bob"), (P, "Alice"))
        assert tokens_by_text(resolver.resolve(list(reversed(spans)))) == {
            "Bob": "[PERSON_NAME_1]",
            "Alice": "[PERSON_NAME_2]",
        }

    def test_counters_independent_per_category(self, resolver: IdentityResolver):
        c = EntityCategory.EMAIL
        text = "Bob at bob@x.io and Alice."
        groups = resolver.resolve(spans_for(text, (P, "Bob"), (c, "bob@x.io"), (P, "Alice")))
        assert [g.placeholder_token for g in groups] == [
            "[PERSON_NAME_1]",
            "[EMAIL_1]",
            "[PERSON_NAME_2]",
        ]

    def test_financial_subtypes_numbered_separately(self, resolver: IdentityResolver):
        text = "Pay 500 into 0001 then 700."
        spans = [
            DetectedSpan(EntityCategory.FINANCIAL, "500", 4, 7, subtype=FinancialSubtype.AMOUNT),
            DetectedSpan(EntityCategory.FINANCIAL, "0001", 13, 17, subtype=FinancialSubtype.ACCOUNT_NUMBER),
            DetectedSpan(EntityCategory.FINANCIAL, "700", 23, 26, subtype=FinancialSubtype.AMOUNT),
        ]
        groups = resolver.resolve(spans)
        assert [g.placeholder_token for g in groups] == [
            "[AMOUNT_1]",
            "[ACCOUNT_NUMBER_1]",
            "[AMOUNT_2]",
        ]

    def test_each_call_starts_from_one(self, resolver: IdentityResolver):
        first = resolver.resolve(spans_for("Bob and Alice", (P, "Bob"), (P, "Alice")))
        second = resolver.resolve(spans_for("Carol", (P, "Carol")))
        assert first[1].placeholder_token == "[PERSON_NAME_2]"
        assert second[0].placeholder_token == "[PERSON_NAME_1]"

    def test_numbering_continues_after_existing_placeholders(self, resolver: IdentityResolver):
        text = "[PERSON_NAME_1] and [PERSON_NAME_3] met Carol at [EMAIL_1]."
        groups = resolver.resolve(spans_for(text, (P, "Carol")), text)
        assert groups[0].placeholder_token == "[PERSON_NAME_4]"

    def test_existing_placeholders_of_other_prefixes_ignored(self, resolver: IdentityResolver):
        c = EntityCategory.EMAIL
        text = "[PERSON_NAME_2] wrote from bob@x.io."
        groups = resolver.resolve(spans_for(text, (c, "bob@x.io")), text)
        assert groups[0].placeholder_token == "[EMAIL_1]"

    def test_no_spans_no_groups(self, resolver: IdentityResolver):
        assert resolver.resolve([]) == []
