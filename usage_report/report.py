import logging
from typing import Optional

from usage_report import models
from usage_report.apihelper import APIHelper, Organization
from usage_report.errors import FilterSetupFailure, UsageReportError

DEFAULT_SERVICE_LABELS = ("p-redis", "p-mysql", "p-rabbitmq")

SERVICE_PLAN_FILTER_EXPR = "?q=service_plan_guid%20IN%20{0}"


def service_plan_filter(api: APIHelper, service_labels) -> Optional[str]:
    """
    Build the query that limits service instance listings to the plans of
    the desired services. Returns None when none of those services exist.
    """
    try:
        plan_guids = []
        for service in api.get_services(service_labels):
            for plan in api.get_service_plans(service.service_plans_url):
                plan_guids.append(plan.guid)
    except UsageReportError as err:
        raise FilterSetupFailure(f"could not retrieve service listing: {err}") from err

    if not plan_guids:
        return None
    return SERVICE_PLAN_FILTER_EXPR.format(",".join(plan_guids))


def get_service_instances(api: APIHelper, service_instances_url: str, plan_filter: Optional[str]) -> tuple:
    if plan_filter is None:
        return ()
    return tuple(
        models.ServiceInstance(name=si.name)
        for si in api.get_space_service_instances(service_instances_url + plan_filter)
    )


def get_apps(api: APIHelper, apps_url: str) -> tuple:
    return tuple(
        models.App(ram=a.ram, instances=a.instances, running=a.running)
        for a in api.get_space_apps(apps_url)
    )


def get_spaces(api: APIHelper, spaces_url: str, plan_filter: Optional[str]) -> tuple:
    spaces = []
    for s in api.get_org_spaces(spaces_url):
        logging.debug("operating on space {0}".format(s.name))
        spaces.append(
            models.Space(
                name=s.name,
                apps=get_apps(api, s.apps_url),
                service_instances=get_service_instances(
                    api, s.service_instances_url, plan_filter
                ),
            )
        )
    return tuple(spaces)


def get_org_details(api: APIHelper, org: Organization, plan_filter: Optional[str]) -> models.Org:
    logging.debug("operating on org {0}".format(org.name))
    usage = api.get_org_memory_usage(org)
    quota = api.get_quota_memory_limit(org.quota_url)
    return models.Org(
        name=org.name,
        memory_quota=quota,
        memory_usage=usage,
        spaces=get_spaces(api, org.spaces_url, plan_filter),
    )


def build_report(
    api: APIHelper,
    org_name: Optional[str] = None,
    service_labels=DEFAULT_SERVICE_LABELS,
) -> models.Report:
    """
    Walk orgs, spaces, apps and service instances into a Report.

    A failed service plan lookup only degrades the service instance filter.
    Any other error aborts the whole report.
    """
    try:
        plan_filter = service_plan_filter(api, service_labels)
    except FilterSetupFailure as err:
        logging.warning("Sorry, {0}; listing all service instances".format(err))
        plan_filter = ""

    if org_name:
        raw_orgs = [api.get_org(org_name)]
    else:
        raw_orgs = api.get_orgs()
    logging.info("reporting on {0} orgs".format(len(raw_orgs)))

    orgs = tuple(get_org_details(api, o, plan_filter) for o in raw_orgs)
    logging.info("finished fetching usage")
    return models.Report(orgs=orgs)
