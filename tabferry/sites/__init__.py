"""Known source sites and the destination composer."""

from __future__ import annotations

from ..handoff.address import AddressScheme
from ..handoff.attachment import RouteGuard
from .base import ComposerProfile, SiteProfile

INDEED = SiteProfile(
    name="indeed",
    scheme=AddressScheme(
        payload_prefix="in_job_payload_tab_",
        ts_prefix="in_job_payload_ts_tab_",
        tab_param="in_rfc_tab",
        sig_param="in_rfc_sig",
        ref_param="in_job",
    ),
    host_suffixes=("indeed.com",),
    marker_selectors=(
        "#jobDescriptionText",
        "div.jobsearch-JobComponent",
        '[data-testid="jobsearch-JobInfoHeader-title"]',
    ),
    title_selectors=('[data-testid="jobsearch-JobInfoHeader-title"]', "h1", "h2"),
    company_selectors=('[data-testid="inlineHeader-companyName"]', '[data-company-name="true"]'),
    location_selectors=(
        '[data-testid="job-location"]',
        '[data-testid="inlineHeader-companyLocation"]',
        '[data-testid="jobsearch-JobInfoHeader-companyLocation"]',
        "#jobLocationText",
    ),
    description_selectors=("#jobDescriptionText", "div.jobsearch-JobComponent"),
    description_heading="About the job",
    min_description_chars=80,
    affordance_host_selectors=('[data-testid="jobsearch-JobInfoHeader-title"]',),
    ref_params=("vjk", "jk", "jobKey"),
)

LINKEDIN = SiteProfile(
    name="linkedin",
    scheme=AddressScheme(
        payload_prefix="li_job_payload_tab_",
        ts_prefix="li_job_payload_ts_tab_",
        tab_param="li_rfc_tab",
        sig_param="li_rfc_sig",
        ref_param="li_job",
    ),
    host_suffixes=("www.linkedin.com",),
    marker_selectors=(
        ".job-details-jobs-unified-top-card__job-title h1",
        ".job-details-jobs-unified-top-card__title-container h2",
    ),
    title_selectors=(
        ".job-details-jobs-unified-top-card__job-title h1 a",
        ".job-details-jobs-unified-top-card__job-title h1",
        "h1",
    ),
    location_selectors=(
        ".job-details-jobs-unified-top-card__primary-description-container .tvm__text--low-emphasis",
        ".jobs-unified-top-card__subtitle-primary-grouping span",
    ),
    description_selectors=(
        "#job-details",
        ".jobs-description__content",
        ".jobs-description-content__text--stretch",
    ),
    affordance_host_selectors=(
        ".job-details-jobs-unified-top-card__job-title h1",
        ".job-details-jobs-unified-top-card__title-container h2",
    ),
    ref_params=("currentJobId",),
    guard=RouteGuard(("/jobs/search", "/jobs/collections")),
)

SOURCE_SITES: tuple[SiteProfile, ...] = (INDEED, LINKEDIN)

CHATGPT_COMPOSER = ComposerProfile(
    name="chatgpt",
    selectors=(
        "div#prompt-textarea[contenteditable]",
        "div.ProseMirror[contenteditable]",
        "textarea#prompt-textarea",
    ),
)


def site_for_url(url: str) -> SiteProfile | None:
    for site in SOURCE_SITES:
        if site.matches_host(url):
            return site
    return None


def all_schemes() -> list[AddressScheme]:
    # First match wins when a URL carries both address parameters.
    return [LINKEDIN.scheme, INDEED.scheme]


__all__ = [
    "CHATGPT_COMPOSER",
    "INDEED",
    "LINKEDIN",
    "SOURCE_SITES",
    "ComposerProfile",
    "SiteProfile",
    "all_schemes",
    "site_for_url",
]
