import random
from typing import List, Dict, Any, Optional

def learner_view(question) -> Dict[str, Any]:
    """Question payload safe to hand to a learner: no correct answer, no explanation."""
    return {
        "id": question.id,
        "type": question.type.value,
        "text": question.text,
        "options": list(question.options) if question.options else None,
        "points": question.points,
        "order": question.order,
    }

def build_question_bank(questions, shuffle: bool = False, seed: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Ordered, answer-stripped question list for one attempt.

    When shuffling, the attempt id is used as the seed so a resumed attempt
    sees the same order it saw at start.
    """
    ordered = sorted(questions, key=lambda q: (q.order, q.id))
    if shuffle:
        random.Random(seed).shuffle(ordered)
    return [learner_view(q) for q in ordered]
