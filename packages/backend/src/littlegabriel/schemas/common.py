"""Shared schema base.

Learn: The browser client speaks camelCase (isAnonymous, createdAt). The
alias generator renames every field on the wire, and populate_by_name
lets Python callers (tests, the CLI) still pass snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

