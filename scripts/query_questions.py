from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

# Ensure repository root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pdfquiz.config import load_env
from pdfquiz.db.question_store import AsyncQuestionStore


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect stored questions for a document.")
    parser.add_argument("--source-pdf", required=True, help="Document id the questions were generated from")
    parser.add_argument("--difficulty", default=None, help="Exam label filter (Easy, Medium, Hard)")
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument(
        "--db-url",
        default=None,
        help="DB URL (Postgres or SQLite path); defaults to DB_URL env or data/questions.db",
    )
    return parser.parse_args(argv)


async def fetch(db_url: str, source_pdf: str, difficulty: Optional[str], limit: int) -> list[dict]:
    store = AsyncQuestionStore(db_url)
    try:
        return await store.load_questions(source_pdf, difficulty, limit)
    finally:
        await store.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    db_url = args.db_url or os.getenv("DB_URL", "data/questions.db")

    questions = asyncio.run(fetch(db_url, args.source_pdf, args.difficulty, args.limit))

    print(f"DB: {db_url}")
    print(f"Document: {args.source_pdf}")
    if not questions:
        print("No questions stored.")
        return 1

    print(f"Questions: {len(questions)}")
    for idx, row in enumerate(questions, start=1):
        print(f"\n#{idx} [{row['difficulty']}/{row['tier_label']}] complexity={row['complexity_score']}")
        print(f"Q: {row['question']}")
        for position, option in enumerate(row["options"]):
            marker = "*" if position == row["correct_answer"] else " "
            print(f"  {marker} {position}. {option}")
        if row["explanation"]:
            print(f"Why: {row['explanation']}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
