"""
Resource client for the Cloud Foundry v2 API.

Every collection is fetched through one of two pagination helpers:

- `process_paged_results` reads `total_pages` from the first reply and asks
  for the remaining pages by number.
- `process_linked_results` follows `next_url` until a reply has none.

Both hand each resource's `metadata` and `entity` to a mapping function and
return the mapped records in page order, then in-page order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, TypeVar
from urllib.parse import quote_plus

from usage_report.errors import MalformedResponse, NotFound

T = TypeVar("T")

STARTED = "STARTED"


@dataclass(frozen=True)
class Organization:
    name: str
    url: str
    quota_url: str
    spaces_url: str


@dataclass(frozen=True)
class Space:
    name: str
    apps_url: str
    service_instances_url: str


@dataclass(frozen=True)
class App:
    instances: int
    ram: int
    running: bool


@dataclass(frozen=True)
class ServiceInstance:
    name: str


@dataclass(frozen=True)
class Service:
    label: str
    service_plans_url: str


@dataclass(frozen=True)
class ServicePlan:
    guid: str
    name: str


def get_field(doc: dict, key: str, kind, where: str = "response"):
    if not isinstance(doc, dict):
        raise MalformedResponse(f"Expected an object in {where}, got {type(doc).__name__}")
    if key not in doc:
        raise MalformedResponse(f"Missing '{key}' in {where}")
    value = doc[key]
    # bool is an int subclass, never accept it for numeric fields
    if not isinstance(value, kind) or (kind is not bool and isinstance(value, bool)):
        expected = getattr(kind, "__name__", "number")
        raise MalformedResponse(
            f"Expected '{key}' in {where} to be {expected}, got {type(value).__name__}"
        )
    return value


def get_str(doc: dict, key: str, where: str = "response") -> str:
    return get_field(doc, key, str, where)


def get_number(doc: dict, key: str, where: str = "response") -> int:
    """Read a non-negative whole number, as JSON ints or floats."""
    value = get_field(doc, key, (int, float), where)
    if value < 0 or (isinstance(value, float) and not value.is_integer()):
        raise MalformedResponse(
            f"Expected '{key}' in {where} to be a non-negative whole number, got {value}"
        )
    return int(value)


def get_resources(doc: dict, where: str) -> list:
    return get_field(doc, "resources", list, where)


def split_resource(resource: dict, where: str) -> tuple:
    metadata = get_field(resource, "metadata", dict, where)
    entity = get_field(resource, "entity", dict, where)
    return metadata, entity


def page_url(url: str, page: int) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}page={page}"


def to_organization(metadata: dict, entity: dict) -> Organization:
    return Organization(
        name=get_str(entity, "name", "organization"),
        url=get_str(metadata, "url", "organization"),
        quota_url=get_str(entity, "quota_definition_url", "organization"),
        spaces_url=get_str(entity, "spaces_url", "organization"),
    )


def to_space(metadata: dict, entity: dict) -> Space:
    return Space(
        name=get_str(entity, "name", "space"),
        apps_url=get_str(entity, "apps_url", "space"),
        service_instances_url=get_str(entity, "service_instances_url", "space"),
    )


def to_app(metadata: dict, entity: dict) -> App:
    return App(
        instances=get_number(entity, "instances", "app"),
        ram=get_number(entity, "memory", "app"),
        running=entity.get("state") == STARTED,
    )


def to_service_instance(metadata: dict, entity: dict) -> ServiceInstance:
    return ServiceInstance(name=get_str(entity, "name", "service instance"))


def to_service(metadata: dict, entity: dict) -> Service:
    return Service(
        label=get_str(entity, "label", "service"),
        service_plans_url=get_str(entity, "service_plans_url", "service"),
    )


def to_service_plan(metadata: dict, entity: dict) -> ServicePlan:
    return ServicePlan(
        guid=get_str(metadata, "guid", "service plan"),
        name=get_str(entity, "name", "service plan"),
    )


class APIHelper:
    """Typed reads of the CF resources the usage report needs."""

    def __init__(self, cf):
        self.cf = cf

    def map_resources(self, doc: dict, url: str, fn: Callable[[dict, dict], T]) -> List[T]:
        objects = []
        for resource in get_resources(doc, url):
            metadata, entity = split_resource(resource, url)
            objects.append(fn(metadata, entity))
        return objects

    def process_paged_results(self, url: str, fn: Callable[[dict, dict], T]) -> List[T]:
        """Fetch every page of a collection that reports `total_pages`."""
        doc = self.cf.get(url)
        pages = get_number(doc, "total_pages", url)
        objects = self.map_resources(doc, url, fn)
        for page in range(2, pages + 1):
            next_page = page_url(url, page)
            logging.debug("fetching page {0}".format(next_page))
            objects.extend(self.map_resources(self.cf.get(next_page), next_page, fn))
        return objects

    def process_linked_results(self, url: str, fn: Callable[[dict, dict], T]) -> List[T]:
        """Fetch every page of a collection by following `next_url`."""
        objects = []
        next_url = url
        while next_url:
            page = next_url
            doc = self.cf.get(page)
            objects.extend(self.map_resources(doc, page, fn))
            next_url = doc.get("next_url")
            if next_url is not None and not isinstance(next_url, str):
                raise MalformedResponse(f"Expected 'next_url' in {page} to be str")
            if next_url:
                logging.debug("fetching page {0}".format(next_url))
        return objects

    def get_orgs(self) -> List[Organization]:
        return self.process_paged_results("/v2/organizations", to_organization)

    def get_org(self, name: str) -> Organization:
        path = "/v2/organizations?q={0}&inline-relations-depth=1".format(
            quote_plus(f"name:{name}")
        )
        doc = self.cf.get(path)
        if get_number(doc, "total_results", path) == 0:
            raise NotFound(f"organization '{name}' not found")
        resources = get_resources(doc, path)
        if not resources:
            raise MalformedResponse(f"No resources in {path} despite total_results")
        metadata, entity = split_resource(resources[0], path)
        return to_organization(metadata, entity)

    def get_quota_memory_limit(self, quota_url: str) -> int:
        """Return the amount of memory (in MB) that the org is allowed."""
        doc = self.cf.get(quota_url)
        entity = get_field(doc, "entity", dict, quota_url)
        return get_number(entity, "memory_limit", quota_url)

    def get_org_memory_usage(self, org: Organization) -> int:
        """Return the amount of memory (in MB) that the org is consuming."""
        path = org.url + "/memory_usage"
        return get_number(self.cf.get(path), "memory_usage_in_mb", path)

    def get_org_spaces(self, spaces_url: str) -> List[Space]:
        return self.process_linked_results(spaces_url, to_space)

    def get_space_apps(self, apps_url: str) -> List[App]:
        return self.process_linked_results(apps_url, to_app)

    def get_space_service_instances(self, service_instances_url: str) -> List[ServiceInstance]:
        return self.process_paged_results(service_instances_url, to_service_instance)

    def get_services(self, desired_labels) -> List[Service]:
        url = "/v2/services?q=label%20IN%20{0}".format(",".join(desired_labels))
        return self.process_paged_results(url, to_service)

    def get_service_plans(self, plans_url: str) -> List[ServicePlan]:
        return self.process_paged_results(plans_url, to_service_plan)
