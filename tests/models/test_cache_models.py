from __future__ import annotations

from models.cache_models import CacheKey
from models.translation_models import TranslationOutcome, TranslationState


def test_cache_key_ignores_unicode_composition() -> None:
    composed: CacheKey = CacheKey.from_request("Le délit", "fr", "ar")
    decomposed: CacheKey = CacheKey.from_request("Le de\u0301lit", "fr", "ar")

    assert composed == decomposed
    assert hash(composed) == hash(decomposed)


def test_cache_key_depends_on_direction() -> None:
    assert CacheKey.from_request("contrat", "fr", "ar") != CacheKey.from_request("contrat", "ar", "fr")


def test_cache_key_digest() -> None:
    key: CacheKey = CacheKey.from_request("contrat", "fr", "ar")

    assert key.digest == f"{key.source_hash}|fr|ar"


def test_outcome_ui_payload_omits_internal_fields() -> None:
    outcome = TranslationOutcome(
        text="نص",
        was_translated=False,
        purity_score=1.0,
        is_fallback=True,
        final_state=TranslationState.FALLBACK,
        oracle_calls=3,
    )

    assert outcome.to_ui_dict() == {"text": "نص", "wasTranslated": False, "purityScore": 1.0, "isFallback": True}
