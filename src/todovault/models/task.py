"""Task data model."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Task(BaseModel):
    """A single to-do item.

    Tasks are immutable value objects: completing a task produces a new
    instance with the same id (``task.model_copy(update={"is_completed": True})``).
    An ``id`` of 0 marks a task that has not been stored yet.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(default=0, ge=0)
    title: str = Field(..., min_length=1)
    description: str = ""
    is_completed: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        if not v.strip():
            raise ValueError("title cannot be blank")
        return v

    @property
    def is_new(self) -> bool:
        """True until the store has assigned an id."""
        return self.id == 0
