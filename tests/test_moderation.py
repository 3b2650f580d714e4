import pytest

from songorders.domain.errors import ContentRejected
from songorders.services.moderation import ContentModerator, normalize


@pytest.fixture
def moderator():
    return ContentModerator()


def test_normalize_strips_accents_and_punctuation():
    assert normalize("Canção, SUICÍDIO!") == "cancao  suicidio "


def test_clean_text_passes(moderator):
    assert moderator.find_terms("Uma canção para o aniversário da minha mãe, com muito amor") == []
    moderator.check("A song about our first trip to the beach")


def test_blocked_word_is_rejected(moderator):
    with pytest.raises(ContentRejected) as ei:
        moderator.check("Que porra é essa")
    assert "porra" in ei.value.terms
    assert ei.value.status_code == 422


def test_matching_ignores_case_and_accents(moderator):
    assert "suicidio" in moderator.find_terms("Nada de SUICÍDIO aqui")


def test_single_words_need_word_boundaries(moderator):
    assert moderator.find_terms("we ate crackers at the computador") == []


def test_phrases_match_across_punctuation(moderator):
    assert "vai se fuder" in moderator.find_terms("Ele disse: vai se fuder!")


def test_extra_terms_are_merged():
    m = ContentModerator(extra_terms=["banana"])
    assert m.find_terms("Banana split") == ["banana"]
    assert "porra" in m.find_terms("porra")


def test_custom_list_replaces_builtin():
    m = ContentModerator(terms=["kiwi"])
    assert m.find_terms("porra") == []
    assert m.find_terms("a kiwi") == ["kiwi"]
