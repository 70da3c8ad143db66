from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class Record(Protocol):
    def header(self) -> list[str]: ...

    def column_values(self) -> list[str]: ...


@dataclass(frozen=True)
class Schema:
    name: str
    owner: str = ""

    HEADER = ("Name", "Owner")

    def header(self) -> list[str]:
        return list(self.HEADER)

    def column_values(self) -> list[str]:
        return [self.name, self.owner]


@dataclass(frozen=True)
class Table:
    name: str
    schema: str
    size: str | None = None

    HEADER = ("Name", "Schema", "Size")

    def header(self) -> list[str]:
        return list(self.HEADER)

    def column_values(self) -> list[str]:
        return [self.name, self.schema, self.size or ""]


@dataclass(frozen=True)
class Column:
    name: str
    data_type: str
    nullable: bool
    default: str | None = None
    description: str | None = None

    HEADER = ("Name", "Type", "Nullable", "Default", "Description")

    def header(self) -> list[str]:
        return list(self.HEADER)

    def column_values(self) -> list[str]:
        return [
            self.name,
            self.data_type,
            "YES" if self.nullable else "NO",
            self.default or "",
            self.description or "",
        ]


@dataclass(frozen=True)
class RawRow:
    """A row whose columns are only known once the query has run."""

    values: tuple[str, ...]
    columns: tuple[str, ...]

    def header(self) -> list[str]:
        return list(self.columns)

    def column_values(self) -> list[str]:
        return list(self.values)


def raw_rows(rows: Sequence[Sequence[str]], columns: Sequence[str]) -> list[RawRow]:
    column_tuple = tuple(columns)
    return [RawRow(values=tuple(row), columns=column_tuple) for row in rows]
