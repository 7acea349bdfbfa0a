"""Static form templates: field mappings and enrichment per document."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from core.forms.enrichment import (
    ComposeStep,
    CourtAddressStep,
    DateStampStep,
    StripCurrencyStep,
    format_amount,
)
from core.forms.models import FieldTargets, FormTemplate, OutputDescriptor

# Column names follow the landlord's case export: one row per tenant household.
FED_COMPLAINT_MAPPING: Mapping[str, FieldTargets] = MappingProxyType(
    {
        "County": ("Court County", "7.3"),
        "Landlord": "π",
        "Tenant": ("∆", "7.0"),
        "Street Address": "7.1",
        "City": "7.2",
        "Zip": "7.4",
    }
)

FED_SUMMONS_MAPPING: Mapping[str, FieldTargets] = MappingProxyType(
    {
        "County": "Court County",
        "Landlord": "Plaintiff",
        "Tenant": ("Defendant", "Served Party"),
        "Street Address": "Premises Address",
        "City": "Premises City",
        "Zip": "Premises Zip",
    }
)

DEMAND_NOTICE_MAPPING: Mapping[str, FieldTargets] = MappingProxyType(
    {
        "Tenant": "Tenant Name",
        "Landlord": "Landlord Name",
        "Street Address": "Premises Address",
        "City": "Premises City",
        "Zip": "Premises Zip",
        "Nonpayment": "Nonpayment",
        "Lease Violation": "Lease Violation",
    }
)

FED_COMPLAINT = OutputDescriptor(
    source_id="jdf101_complaint.pdf",
    label="Complaint",
    mapping=FED_COMPLAINT_MAPPING,
    enrichment=(
        CourtAddressStep(county_column="County", target_field="Court Address"),
        StripCurrencyStep(source_column="Rent Owed", target_field="9.1"),
        DateStampStep(target_field="Date Signed"),
    ),
)

FED_SUMMONS = OutputDescriptor(
    source_id="jdf102_summons.pdf",
    label="Summons",
    mapping=FED_SUMMONS_MAPPING,
    enrichment=(
        CourtAddressStep(county_column="County", target_field="Court Address"),
        ComposeStep(
            target_field="Premises Line",
            pattern="{Street Address}, {City}, CO {Zip}",
        ),
        DateStampStep(target_field="Date Issued"),
    ),
)

DEMAND_NOTICE = OutputDescriptor(
    source_id="demand_for_compliance.pdf",
    label="Demand",
    mapping=DEMAND_NOTICE_MAPPING,
    enrichment=(
        StripCurrencyStep(source_column="Rent Owed", target_field="Amount Due"),
        ComposeStep(
            target_field="Demand Message",
            pattern=(
                "{Tenant}: pay ${Rent Owed} or deliver possession of "
                "{Street Address} within 10 days of service."
            ),
            transforms=MappingProxyType({"Rent Owed": format_amount}),
        ),
        DateStampStep(target_field="Date Served"),
    ),
)


DEFAULT_TEMPLATES: tuple[FormTemplate, ...] = (
    FormTemplate(
        template_id="co_fed_complaint",
        display_name="Colorado FED Complaint",
        documents=(FED_COMPLAINT,),
    ),
    FormTemplate(
        template_id="co_fed_packet",
        display_name="Colorado FED Filing Packet",
        documents=(FED_COMPLAINT, FED_SUMMONS),
    ),
    FormTemplate(
        template_id="co_demand_notice",
        display_name="Demand for Compliance or Possession",
        documents=(DEMAND_NOTICE,),
    ),
)
