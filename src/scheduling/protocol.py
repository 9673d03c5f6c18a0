"""
Request and outcome models shared by every solver.

The same models are the JSON wire format of the solver bridge, so an
in-process solver and an external process are interchangeable: both take a
``SolveRequest`` and produce one ``SolveResponse`` variant.

Wire format:
    request  {"items": [1, 2], "terms": [{"id": 0, "from": 0, "to": 10, "locked_id": null}]}
    response {"status": "ok", "assignments": [{"term_id": 0, "item_id": 1}]}
             {"status": "invalid_item", "message": "...", "term_id": 0, "item_id": 9}
             {"status": "conflict", "message": "...", "conflicts": [0, 3]}
             {"status": "timeout", "message": "..."}
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class TermPayload(BaseModel):
    """One term as seen by a solver: integer epoch seconds, inclusive."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(..., description="Index into the caller's term list")
    from_: int = Field(..., alias="from", description="Start, epoch seconds")
    to: int = Field(..., description="End, epoch seconds")
    locked_id: int | None = Field(None, description="Item the term is pinned to")

    def get_from(self) -> int:
        return self.from_

    def get_to(self) -> int:
        return self.to

    @property
    def duration(self) -> int:
        return self.to - self.from_


class SolveRequest(BaseModel):
    """A complete scheduling problem."""

    items: list[int] = Field(default_factory=list, description="Item ids in registration order")
    terms: list[TermPayload] = Field(default_factory=list, description="Terms in registration order")
    timeout: float | None = Field(None, gt=0, description="Solver time budget in seconds")


class Assignment(BaseModel):
    term_id: int
    item_id: int


class OkResponse(BaseModel):
    status: Literal["ok"] = "ok"
    assignments: list[Assignment] = Field(default_factory=list)


class InvalidItemResponse(BaseModel):
    status: Literal["invalid_item"] = "invalid_item"
    message: str
    term_id: int
    item_id: int


class ConflictResponse(BaseModel):
    status: Literal["conflict"] = "conflict"
    message: str
    conflicts: list[int] = Field(default_factory=list)


class TimeoutResponse(BaseModel):
    status: Literal["timeout"] = "timeout"
    message: str


SolveResponse = Annotated[
    Union[OkResponse, InvalidItemResponse, ConflictResponse, TimeoutResponse],
    Field(discriminator="status"),
]

_response_adapter: TypeAdapter[SolveResponse] = TypeAdapter(SolveResponse)


def encode_request(request: SolveRequest) -> str:
    # "timeout" is optional on the wire; "locked_id" is always sent, null when unpinned
    exclude = {"timeout"} if request.timeout is None else None
    return request.model_dump_json(by_alias=True, exclude=exclude)


def decode_request(raw: str | bytes) -> SolveRequest:
    return SolveRequest.model_validate_json(raw)


def encode_response(response: SolveResponse) -> str:
    return response.model_dump_json()


def decode_response(raw: str | bytes) -> SolveResponse:
    """Parse one response message.

    Raises:
        pydantic.ValidationError: malformed JSON, unknown ``status`` or
            missing fields.
    """
    return _response_adapter.validate_json(raw)
