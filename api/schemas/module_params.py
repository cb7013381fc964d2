"""
Request schemas for billing hook invocations
"""
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Scalar = Union[str, int]


class ClientDetails(BaseModel):
    model_config = ConfigDict(extra='allow')

    userid: Optional[Scalar] = None
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None


class ServiceModel(BaseModel):
    """Stored service record fields the module reads identifiers from"""
    model_config = ConfigDict(extra='allow')

    assignedips: Optional[str] = None
    dedicatedip: Optional[str] = None


class ModuleParams(BaseModel):
    """Module parameters as the billing system passes them to a hook"""
    model_config = ConfigDict(extra='allow')

    serviceid: Optional[Scalar] = None
    pid: Optional[Scalar] = None
    serverid: Optional[Scalar] = None
    serverhostname: Optional[str] = None
    serverip: Optional[str] = None
    serveraccesshash: Optional[str] = None
    domain: Optional[str] = None
    password: Optional[str] = None
    configoption1: Optional[Scalar] = Field(None, description="Game Config ID")
    configoption2: Optional[Scalar] = Field(None, description="Node ID")
    configoption3: Optional[Scalar] = Field(None, description="Location")
    configoption4: Optional[Scalar] = Field(None, description="Auto Deploy (yes/no)")
    configoption5: Optional[Scalar] = Field(None, description="Server Name Format")
    customfields: Dict[str, Any] = Field(default_factory=dict)
    configoptions: Dict[str, Any] = Field(default_factory=dict)
    clientsdetails: ClientDetails = Field(default_factory=ClientDetails)
    model: ServiceModel = Field(default_factory=ServiceModel)

    def to_params(self) -> Dict[str, Any]:
        return self.model_dump()


class ClientAreaRequest(BaseModel):
    params: ModuleParams
    action: Optional[Literal['start', 'stop', 'restart']] = None
