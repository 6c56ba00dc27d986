from pydantic import BaseModel, Field


class GrammarCorrection(BaseModel):
    original: str
    corrected: str
    rule: str = ""


class CorrectionsPayload(BaseModel):
    items: list[GrammarCorrection] = Field(default_factory=list)


class ProgressUpdate(BaseModel):
    learned: list[str] = Field(default_factory=list)
    difficult: list[str] = Field(default_factory=list)


class TutorReply(BaseModel):
    content: str
    corrections: list[GrammarCorrection] = Field(default_factory=list)
    progress: ProgressUpdate = Field(default_factory=ProgressUpdate)
