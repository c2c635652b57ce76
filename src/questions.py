import json
import logging
import random
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict

from constants import CATEGORIES, DEFAULT_DIFFICULTY, DIFFICULTIES, TEST_TYPES


@dataclass(frozen=True)
class Question:
    question: str
    options: tuple[str, str, str, str]
    correct_answer: int
    difficulty: str
    category: str
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["options"] = list(self.options)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            question=str(data["question"]),
            options=tuple(str(o) for o in data["options"]),  # type: ignore[arg-type]
            correct_answer=int(data["correct_answer"]),
            difficulty=str(data.get("difficulty") or DEFAULT_DIFFICULTY),
            category=str(data.get("category") or ""),
            explanation=str(data.get("explanation") or ""),
        )


# category -> list of (question, options, correct index, explanation)
_FALLBACK_POOL: Dict[str, list[tuple[str, list[str], int, str]]] = {
    "mathematical reasoning": [
        (
            "If 2 + 2 = 4, and 3 + 3 = 6, what is 4 + 4?",
            ["6", "7", "8", "9"],
            2,
            "Following the pattern, 4 + 4 = 8.",
        ),
        (
            "A shirt costs 80 after a 20% discount. What was the original price?",
            ["96", "100", "104", "120"],
            1,
            "80 is 80% of the original price, so the original price is 80 / 0.8 = 100.",
        ),
    ],
    "pattern recognition": [
        (
            "What number comes next: 2, 6, 12, 20, 30, ?",
            ["36", "40", "42", "44"],
            2,
            "The differences grow by 2 (4, 6, 8, 10), so the next difference is 12: 30 + 12 = 42.",
        ),
    ],
    "verbal intelligence": [
        (
            "BOOK is to READ as FORK is to ...",
            ["Kitchen", "Eat", "Knife", "Metal"],
            1,
            "A book is used to read; a fork is used to eat.",
        ),
    ],
    "logical thinking": [
        (
            "All bloops are razzies and all razzies are lazzies. Are all bloops definitely lazzies?",
            ["Yes", "No", "Only some", "Cannot be determined"],
            0,
            "Bloops are a subset of razzies, which are a subset of lazzies, so every bloop is a lazzie.",
        ),
    ],
    "spatial reasoning": [
        (
            "How many faces does a cube have?",
            ["4", "6", "8", "12"],
            1,
            "A cube has six square faces.",
        ),
    ],
}


def _fallback_question(category: str, difficulty: str) -> Question:
    pool = _FALLBACK_POOL.get(category) or _FALLBACK_POOL["mathematical reasoning"]
    if category not in _FALLBACK_POOL:
        category = "mathematical reasoning"
    text, options, correct, explanation = random.choice(pool)
    return Question(
        question=text,
        options=tuple(options),  # type: ignore[arg-type]
        correct_answer=correct,
        difficulty=difficulty,
        category=category,
        explanation=explanation,
    )


def _pick_category(test_type: str) -> str:
    entry = TEST_TYPES.get(test_type)
    if entry is not None and entry[2] is not None:
        return entry[2]
    return random.choice(CATEGORIES)


def _build_question_prompt(category: str, difficulty: str) -> str:
    return (
        f"Generate a challenging IQ question for {difficulty} difficulty level "
        f"in the category of {category}.\n"
        "\n"
        "Requirements:\n"
        "- Create an original, thought-provoking question\n"
        "- Provide exactly 4 multiple choice options (A, B, C, D)\n"
        "- Exactly one option must be correct\n"
        "- Include a clear explanation of the correct answer\n"
        f"- Make it appropriate for {difficulty} level\n"
        "\n"
        "Respond with a single JSON object and nothing else:\n"
        "{\n"
        '  "question": "The actual question text",\n'
        '  "options": ["Option A", "Option B", "Option C", "Option D"],\n'
        '  "correctAnswer": 0,\n'
        '  "explanation": "Why the correct option is correct"\n'
        "}"
    )


_DECODER = json.JSONDecoder()


def _extract_json_object(raw: str) -> Dict[str, Any]:
    """Return the first JSON object embedded in `raw`; trailing prose is ignored."""
    start = raw.find("{")
    while start != -1:
        try:
            data, _ = _DECODER.raw_decode(raw, start)
        except ValueError:
            data = None
        if isinstance(data, dict):
            return data
        start = raw.find("{", start + 1)
    raise ValueError("No JSON object in generator output")


def _parse_question(raw: str, category: str, difficulty: str) -> Question:
    """
    Parse generator output into a Question.

    Accepts a bare JSON object, a fenced ```json block or an object embedded
    in prose. Raises ValueError on anything that does not have the expected shape.
    """
    data = _extract_json_object(raw or "")

    text = str(data.get("question") or "").strip()
    if not text:
        raise ValueError("Empty question text")

    options = data.get("options")
    if not isinstance(options, list) or len(options) != 4:
        raise ValueError(f"Expected 4 options, got {options!r}")
    options = [str(o).strip() for o in options]
    if any(not o for o in options):
        raise ValueError("Empty answer option")

    correct = data.get("correctAnswer", data.get("correct_answer"))
    if isinstance(correct, bool) or not isinstance(correct, (int, str)):
        raise ValueError(f"Bad correctAnswer: {correct!r}")
    if isinstance(correct, str):
        s = correct.strip().upper()
        if len(s) == 1 and s in "ABCD":
            correct = "ABCD".index(s)
        else:
            correct = int(s)
    if not 0 <= correct <= 3:
        raise ValueError(f"correctAnswer out of range: {correct}")

    return Question(
        question=text,
        options=tuple(options),  # type: ignore[arg-type]
        correct_answer=correct,
        difficulty=difficulty,
        category=category,
        explanation=str(data.get("explanation") or "").strip(),
    )


def generate_question(
    generate: Callable[[str], str],
    test_type: str,
    difficulty: str = DEFAULT_DIFFICULTY,
) -> Question:
    """
    Ask the generator for a question; never raises.

    Any failure (call error, non-JSON output, wrong shape) is replaced by a
    question from the fixed fallback pool.
    """
    if difficulty not in DIFFICULTIES:
        difficulty = DEFAULT_DIFFICULTY
    category = _pick_category(test_type)
    prompt = _build_question_prompt(category=category, difficulty=difficulty)
    try:
        raw = generate(prompt)
        return _parse_question(raw, category=category, difficulty=difficulty)
    except Exception:
        logging.getLogger(__name__).warning(
            "Question generation failed for %s/%s; using fallback question",
            category,
            difficulty,
            exc_info=True,
        )
        return _fallback_question(category=category, difficulty=difficulty)
