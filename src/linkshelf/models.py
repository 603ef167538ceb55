"""Entity kinds of the bookmark application."""

from __future__ import annotations

from linkshelf.types import Entity, Field


class Category(Entity):
    title: Field[str]
    position_idx: Field[int] = Field(default=0)
    sort_by: Field[str]


class Link(Entity):
    title: Field[str]
    href: Field[str]
    category_id: Field[int] = Field(read_only=True)
    favicon_url: Field[str]
    favicon_data_uri: Field[str]
    access_key: Field[str]


class User(Entity):
    name: Field[str]
    email: Field[str] = Field(read_only=True)
    verified_email: Field[bool] = Field(read_only=True)
    session_token: Field[str]
    picture: Field[str]
    lat_long: Field[str] = Field(read_only=True)
    city: Field[str] = Field(read_only=True)
    region: Field[str] = Field(read_only=True)
    country: Field[str] = Field(read_only=True)
