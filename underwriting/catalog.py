from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Department:
    slug: str
    name: str
    product_types: tuple[str, ...]


MARINE_PRODUCT_TYPES = (
    "Marine Cargo Single Shipment",
    "Marine Open Cover",
    "Haulier Liability/FFL",
    "Commercial Vessel",
    "Pleasure Boats",
    "Jetski",
    "P&I",
    "Marine Liability",
    "Goods in Transit",
)

ENGINEERING_PRODUCT_TYPES = (
    "CONTRACTORS ALL RISKS",
    "ERECTION ALL RISKS",
    "Comprehensive Project (CP)",
    "Delay in Start Up (DSU) / Advanced Loss of Profit only in conjunction with CAR / EAR / CP "
    "sublimit 10% of Total Contract Value maximum USD 1,361,470",
    "Contractor's Plant and Machinery (CPM) including own damage losses of self propelled CPM's "
    "whilst in transit on the road",
    "Third Party Liability when written in conjunction with CAR / EAR / CPM / BPV only",
    "MACHINERY ALL RISKS",
    "MACHINERY BREAKDOWN",
    "LOSS OF PROFIT FOLLOWING MACHINERY BREAKDOWN",
    "BOILER AND PRESSURE VESSEL",
    "ELECTRONIC EQUIPMENT",
    "DETERIORATION OF STOCKS IN COLD STORAGE",
    "CONTRACTORS PLANT AND MACHINERY SCHEDULE",
)

PROPERTY_PRODUCT_TYPES = (
    "FIRE & PERILS",
    "PROPERTY ALL RISKS",
    "BUSINESS INTERRUPTION ( Loss of Profits, Additional/Increased Cost of Working, Auditors Fee etc.)",
    "HOUSE HOLDER/OWNER COMPREHENSIVE",
    "OFFICE CONTENTS",
    "HOTEL COMP RISK",
    "Contingent Business Interruption (CBI) if written in accordance with the Contingent Business "
    "Interruption (CBI) Clause in the Contractual Wording",
    "MECHANICAL/ELECTRICAL BREKDOWN",
    "BURGLARY when written in conjunction with fire",
    "MONEY/CASH (CIT)",
    "FIDELITY GUARANTEE (FG)",
    "PUBLIC LIABILITY/TPL if also covered under a Fire or PAR",
)

LIABILITY_PRODUCT_TYPES = (
    "Commercial General Liability (CGL) Insurance",
    "Public Liability Insurance",
    "Product Liability Insurance",
    "Professional Indemnity (Errors & Omissions) Insurance",
    "Employers' Liability Insurance",
    "Workers' Compensation Insurance",
    "Directors & Officers (D&O) Liability Insurance",
    "Commercial Auto Liability Insurance",
    "Umbrella/Excess Liability Insurance",
    "Product Recall Insurance",
    "Medical Malpractice Insurance",
    "Cyber Liability Insurance",
    "Environmental Liability Insurance",
    "Personal Liability Insurance",
    "Airside Aviation Liability Insurance",
    "Event Liability Insurance",
    "Employment Practices Liability Insurance (EPL)",
    "Crime Insurance (Commercial Crime/Fidelity Guarantee)",
    "Financial Institutions Professional Indemnity Insurance",
    "Bankers Blanket Bond",
    "Public Offering of Securities Insurance (POSI)",
    "Pension Trustee Liability Insurance",
    "Fiduciary Liability Insurance",
    "Prospectus Liability Insurance",
)

MARINE = Department("marine", "Marine", MARINE_PRODUCT_TYPES)
PROPERTY_ENGINEERING = Department(
    "property-engineering",
    "Property & Engineering",
    ENGINEERING_PRODUCT_TYPES + PROPERTY_PRODUCT_TYPES,
)
LIABILITY = Department("liability", "Liability & Financial", LIABILITY_PRODUCT_TYPES)

DEPARTMENTS = {d.slug: d for d in (MARINE, PROPERTY_ENGINEERING, LIABILITY)}

CURRENCIES = ("AED", "USD", "EUR")
QUOTATION_STATUSES = ("Open", "Confirmed", "Decline")
BUSINESS_TYPES = ("New Business", "Renewal")
ORDER_STATUSES = ("Firm Order Received", "COI Issued", "KYC Pending", "KYC Completed")
POLICY_ISSUED = "Policy Issued"
ALL_ORDER_STATUSES = ORDER_STATUSES + (POLICY_ISSUED,)
FIRM_ORDER_STATUSES = ["Firm Order Received", "KYC Pending"]
COVER_GROUPS = ("ENGINEERING", "PROPERTY")

# Marine KPI segmentation. "Aviation" is not a Marine product type but is
# counted as cargo when it shows up in imported data.
CARGO_PRODUCTS = frozenset({
    "Marine Cargo Single Shipment",
    "Marine Open Cover",
    "Goods in Transit",
    "Haulier Liability/FFL",
    "Aviation",
})
HULL_PRODUCTS = frozenset({
    "Commercial Vessel",
    "Pleasure Boats",
    "Jetski",
    "P&I",
    "Marine Liability",
})

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTHS_FULL = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

DEFAULT_TARGET_YEAR = 2026

MARINE_TARGETS: dict[int, dict[str, dict]] = {
    2024: {
        "cargo": {
            "yearly": 20_000_000,
            "monthly": [4500000, 3200000, 1800000, 1400000, 1900000, 1400000,
                        1100000, 1000000, 1050000, 1100000, 1550000, 1000000],
        },
        "hull": {
            "yearly": 9_000_000,
            "monthly": [900000, 1500000, 500000, 580000, 1220000, 870000,
                        380000, 510000, 580000, 460000, 530000, 970000],
        },
    },
    2025: {
        "cargo": {
            "yearly": 22_000_000,
            "monthly": [4900000, 3500000, 1900000, 1480000, 2000000, 1480000,
                        1160000, 1050000, 1100000, 1180000, 1650000, 1600000],
        },
        "hull": {
            "yearly": 10_000_000,
            "monthly": [1000000, 1650000, 560000, 640000, 1350000, 960000,
                        420000, 570000, 650000, 510000, 590000, 1100000],
        },
    },
    2026: {
        "cargo": {
            "yearly": 25_000_000,
            "monthly": [5362614, 3853507, 2059239, 1599800, 2159781, 1600365,
                        1259177, 1140162, 1200659, 1280724, 1782742, 1701230],
        },
        "hull": {
            "yearly": 11_000_000,
            "monthly": [1101052, 1816793, 615138, 710362, 1496726, 1062651,
                        469876, 629817, 715112, 565889, 654404, 1162179],
        },
    },
    2027: {
        "cargo": {
            "yearly": 27_500_000,
            "monthly": [5900000, 4240000, 2265000, 1760000, 2376000, 1760000,
                        1385000, 1254000, 1321000, 1409000, 1961000, 1870000],
        },
        "hull": {
            "yearly": 12_100_000,
            "monthly": [1211000, 1998000, 677000, 781000, 1646000, 1169000,
                        517000, 693000, 787000, 622000, 720000, 1279000],
        },
    },
}


def get_department(slug: str) -> Department | None:
    return DEPARTMENTS.get(slug)


def targets_for_year(year: int) -> dict[str, dict]:
    return MARINE_TARGETS.get(year, MARINE_TARGETS[DEFAULT_TARGET_YEAR])


def cover_group_for(product_type: str) -> str | None:
    if product_type in ENGINEERING_PRODUCT_TYPES:
        return "ENGINEERING"
    if product_type in PROPERTY_PRODUCT_TYPES:
        return "PROPERTY"
    return None
