"""
Prompt building for language-model move services, and pulling the move back out of their free-form replies.
"""

import re

from src.ai.service import AIMoveRequest
from src.core.shared_types import Difficulty

SYSTEM_INSTRUCTION = """You are a professional chess engine. You must respond with only a valid chess move in standard algebraic notation (SAN).

Rules:
- Analyze the board position provided in FEN notation
- Generate only legal moves according to chess rules
- Consider the specified difficulty level
- Respond with only the move (e.g., "Nf3", "e4", "O-O", "Qxd7+")
- Never explain your reasoning, only provide the move
- If castling, use "O-O" for kingside and "O-O-O" for queenside
- For pawn promotion, include the piece (e.g., "e8=Q")"""

DIFFICULTY_PROMPTS: dict[Difficulty, str] = {
    Difficulty.EASY: """Play at beginner level:
- Make reasonable but not optimal moves
- Focus on basic piece development
- Don't calculate deeply""",
    Difficulty.MEDIUM: """Play at intermediate level:
- Look for basic tactics (pins, forks, skewers)
- Consider positional principles
- Calculate 2-3 moves ahead""",
    Difficulty.HARD: """Play at advanced level:
- Calculate deeply (4-6 moves ahead)
- Exploit all tactical and positional opportunities
- Consider long-term strategic plans""",
}

# A SAN move (with optional check / mate mark) or a UCI move, as a whole word
MOVE_TOKEN_RE = re.compile(
    r"(?<![\w-])("
    r"[O0]-[O0](?:-[O0])?[+#]?"
    r"|[a-h][1-8][a-h][1-8][nbrqNBRQ]?"
    r"|[KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](?:=?[QRBN])?[+#]?"
    r")(?![\w-])"
)


def build_messages(request: AIMoveRequest) -> list[dict[str, str]]:
    """Chat-style conversation: system instruction, then the position, side to move and recent moves."""
    recent_moves = " ".join(request.history_san) or "Game start"
    user_prompt = "\n".join(
        [
            DIFFICULTY_PROMPTS[request.difficulty],
            "",
            f"Current position (FEN): {request.fen}",
            f"Side to move: {request.color}",
            f"Recent moves: {recent_moves}",
            "",
            "Your move:",
        ]
    )
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": user_prompt},
    ]


def strip_code_fence(text: str) -> str:
    """Remove simple ``` fences if present."""
    text = text.strip()
    if text.startswith("```") and text.endswith("```"):
        inner = text.split("\n", 1)
        if len(inner) == 2:
            return inner[1].rsplit("\n", 1)[0].strip()
        return text.strip("`").strip()
    return text


def extract_move_text(raw: str) -> str:
    """
    The first move-like token of a reply ("I'll play **Nf3**." --> "Nf3").
    Falls back to the first word when nothing looks like a move, so the parser can report what was actually said.
    """
    text = strip_code_fence(raw).replace("*", "").replace("`", "")
    match = MOVE_TOKEN_RE.search(text)
    if match:
        return match.group(1)
    words = text.split()
    return words[0] if words else ""
