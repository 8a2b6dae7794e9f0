"""
Resource library API client.
"""
from typing import Optional

from carebridge.schemas.resources import (
    Resource, ResourceCreate, ResourceList, ResourceMetrics,
    ResourceQueryParams, ResourceUpdate,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows


class ResourcesApi:
    base_path = "/api/resources"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list_resources(self, params: Optional[ResourceQueryParams] = None) -> ResourceList:
        data = await self.client.get(self.base_path, params=params.to_payload() if params else None)
        resources = parse_rows(extract(data, "resources"), Resource.from_row)
        total = data.get("total") if isinstance(data, dict) else None
        return ResourceList(resources=resources, total=int(total or len(resources)))

    async def get_resource(self, resource_id: str) -> Resource:
        data = await self.client.get(f"{self.base_path}/{resource_id}")
        return parse_row(extract(data, "resource"), Resource.from_row)

    async def create_resource(self, data: ResourceCreate) -> Resource:
        result = await self.client.post(self.base_path, json_body=data.to_payload())
        return parse_row(extract(result, "resource"), Resource.from_row)

    async def update_resource(self, resource_id: str, data: ResourceUpdate) -> Resource:
        result = await self.client.put(f"{self.base_path}/{resource_id}", json_body=data.to_payload())
        return parse_row(extract(result, "resource"), Resource.from_row)

    async def delete_resource(self, resource_id: str) -> None:
        await self.client.delete(f"{self.base_path}/{resource_id}")

    async def track_view(self, resource_id: str) -> None:
        await self.client.post(f"{self.base_path}/{resource_id}/view")

    async def track_download(self, resource_id: str) -> None:
        await self.client.post(f"{self.base_path}/{resource_id}/download")

    async def get_resource_metrics(self, params: Optional[ResourceQueryParams] = None) -> ResourceMetrics:
        """Aggregate views/downloads/type counts over the listed resources."""
        listing = await self.list_resources(params)
        return ResourceMetrics.from_resources(listing.resources)
