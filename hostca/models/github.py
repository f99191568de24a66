from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PageInfo(BaseModel):
    has_next_page: bool = Field(alias="hasNextPage")
    end_cursor: Optional[str] = Field(default=None, alias="endCursor")


class SAMLIdentity(BaseModel):
    name_id: Optional[str] = Field(default=None, alias="nameId")


class GitHubUser(BaseModel):
    login: str


class ExternalIdentity(BaseModel):
    saml_identity: Optional[SAMLIdentity] = Field(default=None, alias="samlIdentity")
    user: Optional[GitHubUser] = None


class ExternalIdentityPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_info: PageInfo = Field(alias="pageInfo")
    nodes: List[ExternalIdentity] = []
