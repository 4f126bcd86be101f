# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
from typing import List, Optional

from pydantic import BaseModel


class InfoModel(BaseModel):
    name: Optional[str] = "SheetTrack"
    description: Optional[str] = None
    version: Optional[str] = None
    linked: bool = False
    endpoints: List[str] = []
