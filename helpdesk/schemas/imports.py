from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field


class RowOutcome(BaseModel):
    """Result for one spreadsheet row. ``row`` is the 1-based sheet row number."""

    row: int
    status: Literal["imported", "failed"]
    key: Optional[str] = None
    error: Optional[str] = None
    # Set for imported user rows so the admin can hand it over.
    temporary_password: Optional[str] = None

    @property
    def message(self) -> str | None:
        if self.error is None:
            return None
        if self.row <= 0:
            return self.error
        return f"Row {self.row}: {self.error}"


class ImportResult(BaseModel):
    outcomes: list[RowOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.row > 0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def successful(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "imported")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "failed")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def errors(self) -> list[str]:
        return [outcome.message for outcome in self.outcomes if outcome.message]

    def record_success(
        self, row: int, key: str | None = None, temporary_password: str | None = None
    ) -> None:
        self.outcomes.append(
            RowOutcome(row=row, status="imported", key=key, temporary_password=temporary_password)
        )

    def record_failure(self, row: int, error: str, key: str | None = None) -> None:
        self.outcomes.append(RowOutcome(row=row, status="failed", key=key, error=error))

    @classmethod
    def file_error(cls, message: str) -> "ImportResult":
        """A whole-file failure: nothing processed, one error reported."""

        return cls(outcomes=[RowOutcome(row=0, status="failed", error=message)])
