from models.quiz import QuestionType
from services.question_bank import build_question_bank, learner_view


def test_learner_view_hides_answers(make_question):
    q = make_question(1, QuestionType.MULTIPLE_CHOICE, correct_answer=["a"], explanation="because",
                      options=[{"id": "a", "text": "A"}])
    view = learner_view(q)
    assert "correct_answer" not in view
    assert "explanation" not in view
    assert view["type"] == "MULTIPLE_CHOICE"
    assert view["options"] == [{"id": "a", "text": "A"}]


def test_bank_follows_question_order(make_question):
    questions = [
        make_question(3, QuestionType.OPEN_ENDED, order=2),
        make_question(1, QuestionType.OPEN_ENDED, order=1),
        make_question(2, QuestionType.OPEN_ENDED, order=1),
    ]
    assert [q["id"] for q in build_question_bank(questions)] == [1, 2, 3]


def test_shuffle_is_stable_for_a_seed(make_question):
    questions = [make_question(i, QuestionType.OPEN_ENDED, order=i) for i in range(1, 21)]
    first = [q["id"] for q in build_question_bank(questions, shuffle=True, seed=42)]
    again = [q["id"] for q in build_question_bank(list(reversed(questions)), shuffle=True, seed=42)]
    assert first == again
    assert sorted(first) == list(range(1, 21))
