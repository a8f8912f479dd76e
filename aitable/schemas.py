from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ParseFileRequest(_CamelModel):
    file_data_uri: str = Field(alias="fileDataUri")  # data:<mime>;base64,<payload>
    file_type: str = Field(alias="fileType")
    delimiter: Optional[str] = None


class ParseFileResponse(_CamelModel):
    parsed_data: str = Field(alias="parsedData")
    parsing_notes: str = Field(default="", alias="parsingNotes")


class CreateTableRequest(_CamelModel):
    prompt: str


class CreateTableResponse(_CamelModel):
    table_data: str = Field(alias="tableData")


class StageErrorOut(BaseModel):
    stage: str
    message: str


class TableView(BaseModel):
    headers: List[str]
    rows: List[Dict[str, Any]]
    status: str
    error: Optional[StageErrorOut] = None
    source: Optional[str] = None
    generation: int = 0
    parsing_notes: Optional[str] = None


class CellUpdate(BaseModel):
    row_index: int
    header: str
    value: Any = ""


class RowInsert(BaseModel):
    after_index: int
