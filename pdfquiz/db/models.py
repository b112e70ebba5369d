from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class QuestionRow(Base):
    __tablename__ = "questions"
    __table_args__ = (Index("ix_questions_source_pdf", "source_pdf"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(Integer, nullable=False, default=0)
    explanation = Column(Text, nullable=False, default="")
    hint = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="ISTQB")
    # Exam label (Easy/Medium/Hard); the generation label lives in tier_label.
    difficulty = Column(String, nullable=False)
    tier = Column(Integer, nullable=False, default=0)
    tier_label = Column(String, nullable=True)
    reasoning = Column(Text, nullable=False, default="")
    complexity_score = Column(Integer, nullable=False, default=7)
    source_pdf = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class QuestionEmbedding(Base):
    __tablename__ = "question_embeddings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True)
    source_pdf = Column(String, nullable=False)
    question = Column(Text, nullable=False)
    model = Column(String, nullable=False)
    embedding = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, server_default=func.now())
