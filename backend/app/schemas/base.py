"""
Schema base Pydantic
Progetto: Gestionale Impianti TVCC

Il frontend scambia JSON in camelCase (customerId, finalAmount...):
gli schemi API ereditano da ApiModel, che genera gli alias camelCase
mantenendo i nomi snake_case lato Python.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base per tutti gli schemi esposti dall'API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
