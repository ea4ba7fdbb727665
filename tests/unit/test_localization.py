from pharmsearch.domain.localization import collation_key, is_supported_language, localized_text


def test_supported_languages():
    assert all(is_supported_language(l) for l in ("en", "nl", "fr", "de"))
    assert not is_supported_language("es")
    assert not is_supported_language(None)

def test_requested_language_wins():
    assert localized_text({"en": "Tablet", "fr": "Comprimé"}, "fr") == "Comprimé"

def test_fallback_order():
    assert localized_text({"de": "Tablette", "nl": "Tablet NL"}, "fr") == "Tablet NL"
    assert localized_text({"de": "Tablette", "fr": ""}, "en") == "Tablette"
    assert localized_text({"xx": "other"}, "en") == "other"

def test_missing_text():
    assert localized_text(None, "en") == ""
    assert localized_text({}, "en") == ""
    assert localized_text({"en": ""}, "en") == ""

def test_collation_key_folds_accents_and_case():
    assert collation_key("Éthanol")[0] == collation_key("ethanol")[0]
    assert sorted(["zinc", "Éthanol", "acide"], key=collation_key) == ["acide", "Éthanol", "zinc"]
    assert collation_key("A") != collation_key("a")
