from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Union


class CamelModel(BaseModel):
    """Base model speaking the host's camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== ITEM SCHEMAS ====================
class BinaryData(CamelModel):
    """Binary payload attached to an item; data is base64 encoded."""
    data: str
    mime_type: str = "application/octet-stream"
    file_name: Optional[str] = None
    file_extension: Optional[str] = None
    file_size: Optional[int] = None


class PairedItem(CamelModel):
    item: int


class NodeItem(CamelModel):
    json_data: Dict[str, Any] = Field(default_factory=dict, alias="json")
    binary: Dict[str, BinaryData] = Field(default_factory=dict)
    paired_item: Optional[PairedItem] = None


class NodeExecutionRequest(CamelModel):
    items: List[NodeItem] = Field(default_factory=lambda: [NodeItem()])
    parameters: Dict[str, Any] = Field(default_factory=dict)
    # Per-item overrides, merged over `parameters` for the matching index
    item_parameters: Optional[List[Dict[str, Any]]] = None
    continue_on_fail: bool = False


class NodeExecutionResponse(CamelModel):
    node: str
    items: List[NodeItem]


class NodeErrorResponse(CamelModel):
    message: str
    item_index: Optional[int] = None


# ==================== DESCRIPTION SCHEMAS ====================
class NodePropertyOption(CamelModel):
    name: str
    value: Any
    description: Optional[str] = None
    action: Optional[str] = None


class NodeProperty(CamelModel):
    display_name: str
    name: str
    type: str  # string, number, options, collection, boolean
    default: Any = None
    description: Optional[str] = None
    options: Optional[List[Union[NodePropertyOption, "NodeProperty"]]] = None
    display_options: Optional[Dict[str, Any]] = None
    type_options: Optional[Dict[str, Any]] = None
    placeholder: Optional[str] = None
    required: bool = False
    no_data_expression: bool = False


class NodeDescription(CamelModel):
    display_name: str
    name: str
    group: List[str]
    version: int = 1
    description: str
    subtitle: Optional[str] = None
    defaults: Dict[str, Any] = Field(default_factory=dict)
    inputs: List[str] = Field(default_factory=lambda: ["main"])
    outputs: List[str] = Field(default_factory=lambda: ["main"])
    properties: List[NodeProperty] = Field(default_factory=list)


# ==================== QUEUE SCHEMAS ====================
class QueuedExecutionResponse(CamelModel):
    task_id: str
    node: str
    message: str


class ExecutionStatusResponse(CamelModel):
    task_id: str
    status: str  # PENDING, STARTED, SUCCESS, FAILURE
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
