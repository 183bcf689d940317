from pressroom.core.quizzes import normalize_question, normalize_questions


def test_options_padded_to_four():
    q = normalize_question({"question": "Q?", "options": ["a", "b"], "correct_answer": 1})
    assert q["options"] == ["a", "b", "N/A", "N/A"]
    assert q["correct_answer"] == 1


def test_extra_options_truncated_and_answer_clamped():
    q = normalize_question({"question": "Q?", "options": list("abcdef"), "correctAnswer": 7})
    assert q["options"] == ["a", "b", "c", "d"]
    assert q["correct_answer"] == 0


def test_camel_case_and_explanation():
    q = normalize_question({"question": " Q? ", "options": ["x"], "correctAnswer": 3, "explanation": " because "})
    assert q["question"] == "Q?"
    assert q["correct_answer"] == 3
    assert q["explanation"] == "because"


def test_list_is_capped_at_ten_and_blank_questions_dropped():
    raw = [{"question": f"Q{i}", "options": ["a"]} for i in range(12)]
    assert len(normalize_questions(raw)) == 10

    raw = [{"question": "", "options": ["a"]}, {"question": "Keep", "options": ["a"]}]
    assert [q["question"] for q in normalize_questions(raw, drop_blank=True)] == ["Keep"]


def test_option_word_limit():
    q = normalize_question(
        {"question": "Q", "options": ["one two three four five six seven eight"]},
        max_option_words=6,
    )
    assert q["options"][0] == "one two three four five six"


def test_non_list_input():
    assert normalize_questions(None) == []
    assert normalize_questions({"question": "Q"}) == []


def test_zero_limit_keeps_no_questions():
    assert normalize_questions([{"question": "Q", "options": ["a"]}], limit=0) == []
