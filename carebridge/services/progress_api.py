"""
Patient progress API client.
"""
from typing import List, Optional

from carebridge.schemas.progress import (
    CreateProgressItemInput, ProgressItem, ProgressModule,
    UpdateProgressItemInput, UpsertProgressInput,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows


class ProgressApi:
    base_path = "/api/progress"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list_patient_progress(
        self,
        patient_id: Optional[str] = None,
        include_items: bool = True,
    ) -> List[ProgressModule]:
        """List progress modules for the current user, or ``patient_id`` when given."""
        params = {"includeItems": str(include_items).lower()}
        if patient_id:
            params["patientId"] = patient_id
        data = await self.client.get(self.base_path, params=params)
        return parse_rows(extract(data, "progress"), ProgressModule.from_row)

    async def get_progress_module(self, module_id: str, patient_id: Optional[str] = None) -> Optional[ProgressModule]:
        params = {"patientId": patient_id} if patient_id else None
        data = await self.client.get(f"{self.base_path}/modules/{module_id}", params=params)
        row = extract(data, "progress")
        return parse_row(row, ProgressModule.from_row) if row else None

    async def upsert_progress(self, data: UpsertProgressInput) -> ProgressModule:
        result = await self.client.post(self.base_path, json_body=data.to_payload())
        return parse_row(extract(result, "progress"), ProgressModule.from_row)

    async def update_progress(self, progress_id: str, data: UpsertProgressInput) -> ProgressModule:
        result = await self.client.put(f"{self.base_path}/{progress_id}", json_body=data.to_payload())
        return parse_row(extract(result, "progress"), ProgressModule.from_row)

    async def create_progress_item(self, progress_id: str, data: CreateProgressItemInput) -> ProgressItem:
        result = await self.client.post(f"{self.base_path}/{progress_id}/items", json_body=data.to_payload())
        return parse_row(extract(result, "item"), ProgressItem.from_row)

    async def update_progress_item(self, item_id: str, data: UpdateProgressItemInput) -> ProgressItem:
        result = await self.client.put(f"{self.base_path}/items/{item_id}", json_body=data.to_payload())
        return parse_row(extract(result, "item"), ProgressItem.from_row)

    async def delete_progress_item(self, item_id: str) -> None:
        await self.client.delete(f"{self.base_path}/items/{item_id}")
