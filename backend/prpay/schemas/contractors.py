from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContractorCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    github_login: str = Field(..., alias="githubLogin", min_length=1)
    person_name: str = Field(..., alias="personName", min_length=1)
    repo_name: str = Field(..., alias="repoName", min_length=1)
    repo_owner: Optional[str] = Field(None, alias="repoOwner")
    wallet_address: str = Field(..., alias="walletAddress", min_length=1)
    role: str = Field(..., min_length=1)
    track_prs: bool = Field(False, alias="trackPRs")
    total_amount_payable: float = Field(..., alias="totalAmountPayable", ge=0)


class ContractorSearch(BaseModel):
    github_login: Optional[str] = None
    wallet_address: Optional[str] = None
    repo_name: Optional[str] = None
    role: Optional[str] = None

    def filters(self) -> Dict[str, Any]:
        return {key: value for key, value in self.model_dump().items() if value}


class ContractorListResponse(BaseModel):
    contractors: List[Dict[str, Any]]


class ContractorResponse(BaseModel):
    contractor: Dict[str, Any]
