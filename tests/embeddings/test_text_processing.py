from embeddings.text_processing import (
    calculate_term_frequency,
    create_document_id,
    extract_ngrams,
    make_preprocessor,
    normalize_text,
    preprocess_text,
    simple_hash,
    stem,
    tokenize,
)


def test_tokenize_strips_punctuation_and_case() -> None:
    assert tokenize("Hello, World!  It's   fine.") == ["hello", "world", "it", "s", "fine"]
    assert tokenize("   ") == []


def test_preprocess_removes_stopwords_and_short_tokens() -> None:
    assert preprocess_text("The cat sat on a mat") == ["cat", "sat", "mat"]
    assert preprocess_text("The cat sat", remove_stopwords=False) == ["the", "cat", "sat"]
    assert preprocess_text("x y zz", remove_stopwords=False, min_word_length=2) == ["zz"]


def test_stemming_applies_first_matching_rule() -> None:
    assert stem("jumping") == "jump"
    assert stem("walked") == "walk"
    assert stem("cats") == "cat"
    # Too short to strip
    assert stem("is") == "is"
    assert stem("sing") == "sing"
    assert preprocess_text("dogs jumping", apply_stemming=True) == ["dog", "jump"]


def test_make_preprocessor_binds_options() -> None:
    preprocess = make_preprocessor(remove_stopwords=False, min_word_length=3)
    assert preprocess("the cat is here") == ["the", "cat", "here"]


def test_term_frequency_is_relative() -> None:
    tf = calculate_term_frequency(["cat", "dog", "cat", "fox"])
    assert tf == {"cat": 0.5, "dog": 0.25, "fox": 0.25}
    assert list(tf) == ["cat", "dog", "fox"]
    assert calculate_term_frequency([]) == {}


def test_extract_ngrams() -> None:
    assert extract_ngrams(["a", "b", "c"], 2) == ["a b", "b c"]
    assert extract_ngrams(["a"], 2) == []


def test_document_id_mixes_source_content_and_time() -> None:
    first = create_document_id("hello world", "notes/a.md", timestamp_ms=1000)
    second = create_document_id("hello world", "notes/a.md", timestamp_ms=1001)
    assert first != second
    assert first.startswith(f"tfidf_{simple_hash('notes/a.md')}_{simple_hash('hello world')}_")
    assert create_document_id("hello", timestamp_ms=5) == f"tfidf_unknown_{simple_hash('hello')}_5"


def test_document_id_only_hashes_content_prefix() -> None:
    shared = "x" * 100
    assert create_document_id(shared + "one", timestamp_ms=1) == create_document_id(
        shared + "two", timestamp_ms=1
    )


def test_normalize_text() -> None:
    assert normalize_text("  Hello \n  World ") == "hello world"
