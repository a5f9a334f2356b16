from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from salesdesk.crm.schemas import Activity, Contact, Deal, Stage

STAGE_FIXTURES: list[dict[str, Any]] = [
    {"id": 1, "name": "Lead", "color": "#6B7280", "order": 1},
    {"id": 2, "name": "Qualified", "color": "#4F46E5", "order": 2},
    {"id": 3, "name": "Proposal", "color": "#7C3AED", "order": 3},
    {"id": 4, "name": "Negotiation", "color": "#F59E0B", "order": 4},
    {"id": 5, "name": "Closed Won", "color": "#10B981", "order": 5},
    {"id": 6, "name": "Closed Lost", "color": "#EF4444", "order": 6},
]

CONTACT_FIXTURES: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "Sarah Johnson",
        "email": "sarah.johnson@techcorp.com",
        "phone": "+1 (555) 123-4567",
        "company": "TechCorp Solutions",
        "position": "VP of Engineering",
        "tags": ["enterprise", "decision-maker"],
        "notes": "Interested in the annual plan for a 200-seat rollout.",
        "created_at": "2024-01-08T09:15:00+00:00",
        "updated_at": "2024-01-20T14:30:00+00:00",
    },
    {
        "id": 2,
        "name": "Michael Chen",
        "email": "m.chen@startupxyz.io",
        "phone": "+1 (555) 234-5678",
        "company": "StartupXYZ",
        "position": "CTO",
        "tags": ["startup", "technical"],
        "notes": "Evaluating us against two competitors.",
        "created_at": "2024-01-10T11:00:00+00:00",
        "updated_at": "2024-01-18T10:45:00+00:00",
    },
    {
        "id": 3,
        "name": "Emily Rodriguez",
        "email": "emily.r@globalretail.com",
        "phone": "+1 (555) 345-6789",
        "company": "Global Retail Inc",
        "position": "Director of Operations",
        "tags": ["enterprise", "retail"],
        "notes": "",
        "created_at": "2024-01-12T08:20:00+00:00",
        "updated_at": "2024-01-12T08:20:00+00:00",
    },
    {
        "id": 4,
        "name": "David Kim",
        "email": "dkim@creativeagency.co",
        "phone": "+1 (555) 456-7890",
        "company": "Creative Agency Co",
        "position": "Managing Partner",
        "tags": ["agency"],
        "notes": "Referred by Sarah Johnson.",
        "created_at": "2024-01-15T16:05:00+00:00",
        "updated_at": "2024-01-22T09:10:00+00:00",
    },
    {
        "id": 5,
        "name": "Lisa Thompson",
        "email": "lisa.thompson@healthplus.org",
        "phone": "+1 (555) 567-8901",
        "company": "HealthPlus",
        "position": "IT Manager",
        "tags": ["healthcare", "compliance"],
        "notes": "Needs HIPAA documentation before procurement.",
        "created_at": "2024-01-17T13:40:00+00:00",
        "updated_at": "2024-01-19T15:00:00+00:00",
    },
    {
        "id": 6,
        "name": "James Wilson",
        "email": "jwilson@financefirst.com",
        "phone": "+1 (555) 678-9012",
        "company": "Finance First",
        "position": "Head of Procurement",
        "tags": ["enterprise", "finance"],
        "notes": "",
        "created_at": "2024-01-19T10:30:00+00:00",
        "updated_at": "2024-01-21T11:15:00+00:00",
    },
]

DEAL_FIXTURES: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "TechCorp Enterprise License",
        "contact_id": 1,
        "value": 85000,
        "stage": "Negotiation",
        "probability": 75,
        "expected_close_date": "2024-03-15",
        "notes": "Legal reviewing the MSA.",
        "created_at": "2024-01-09T10:00:00+00:00",
        "updated_at": "2024-01-20T14:30:00+00:00",
    },
    {
        "id": 2,
        "title": "StartupXYZ Growth Plan",
        "contact_id": 2,
        "value": 12000,
        "stage": "Proposal",
        "probability": 60,
        "expected_close_date": "2024-02-28",
        "notes": "",
        "created_at": "2024-01-11T09:30:00+00:00",
        "updated_at": "2024-01-18T10:45:00+00:00",
    },
    {
        "id": 3,
        "title": "Global Retail POS Integration",
        "contact_id": 3,
        "value": 150000,
        "stage": "Qualified",
        "probability": 40,
        "expected_close_date": "2024-04-30",
        "notes": "Multi-region rollout, phased.",
        "created_at": "2024-01-13T12:00:00+00:00",
        "updated_at": "2024-01-16T17:20:00+00:00",
    },
    {
        "id": 4,
        "title": "Creative Agency Team Seats",
        "contact_id": 4,
        "value": 8500,
        "stage": "Closed Won",
        "probability": 100,
        "expected_close_date": "2024-01-31",
        "notes": "Signed.",
        "created_at": "2024-01-15T16:30:00+00:00",
        "updated_at": "2024-01-22T09:10:00+00:00",
    },
    {
        "id": 5,
        "title": "HealthPlus Compliance Suite",
        "contact_id": 5,
        "value": 45000,
        "stage": "Lead",
        "probability": 20,
        "expected_close_date": "2024-05-15",
        "notes": "",
        "created_at": "2024-01-17T14:00:00+00:00",
        "updated_at": "2024-01-17T14:00:00+00:00",
    },
    {
        "id": 6,
        "title": "Finance First Pilot",
        "contact_id": 6,
        "value": 25000,
        "stage": "Closed Lost",
        "probability": 0,
        "expected_close_date": "2024-02-10",
        "notes": "Budget frozen until next fiscal year.",
        "created_at": "2024-01-19T11:00:00+00:00",
        "updated_at": "2024-01-21T11:15:00+00:00",
    },
    {
        "id": 7,
        "title": "TechCorp Support Add-on",
        "contact_id": 1,
        "value": 18000,
        "stage": "Lead",
        "probability": 20,
        "expected_close_date": "2024-04-01",
        "notes": "",
        "created_at": "2024-01-20T15:00:00+00:00",
        "updated_at": "2024-01-20T15:00:00+00:00",
    },
]

ACTIVITY_FIXTURES: list[dict[str, Any]] = [
    {
        "id": 1,
        "type": "call",
        "contact_id": 1,
        "deal_id": 1,
        "description": "Discovery call covering rollout timeline and seat count",
        "timestamp": "2024-01-09T10:30:00+00:00",
    },
    {
        "id": 2,
        "type": "email",
        "contact_id": 2,
        "deal_id": 2,
        "description": "Sent pricing proposal for the growth plan",
        "timestamp": "2024-01-18T10:45:00+00:00",
    },
    {
        "id": 3,
        "type": "meeting",
        "contact_id": 3,
        "deal_id": 3,
        "description": "On-site requirements workshop with operations team",
        "timestamp": "2024-01-16T17:20:00+00:00",
    },
    {
        "id": 4,
        "type": "note",
        "contact_id": 4,
        "deal_id": 4,
        "description": "Deal moved from Negotiation to Closed Won",
        "timestamp": "2024-01-22T09:10:00+00:00",
    },
    {
        "id": 5,
        "type": "demo",
        "contact_id": 5,
        "deal_id": 5,
        "description": "Product demo focused on audit logging",
        "timestamp": "2024-01-19T15:00:00+00:00",
    },
    {
        "id": 6,
        "type": "task",
        "contact_id": 6,
        "deal_id": None,
        "description": "Follow up on budget approval next quarter",
        "timestamp": "2024-01-21T11:15:00+00:00",
    },
    {
        "id": 7,
        "type": "email",
        "contact_id": 1,
        "deal_id": 1,
        "description": "Shared redlined MSA with legal",
        "timestamp": "2024-01-20T14:30:00+00:00",
    },
    {
        "id": 8,
        "type": "note",
        "contact_id": None,
        "deal_id": None,
        "description": "Quarterly pipeline review scheduled",
        "timestamp": "2024-01-22T08:00:00+00:00",
    },
]


@dataclass
class SeedData:
    contacts: list[Contact] = field(default_factory=list)
    deals: list[Deal] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)
    stages: list[Stage] = field(default_factory=list)


def load_seed() -> SeedData:
    return SeedData(
        contacts=[Contact.model_validate(item) for item in CONTACT_FIXTURES],
        deals=[Deal.model_validate(item) for item in DEAL_FIXTURES],
        activities=[Activity.model_validate(item) for item in ACTIVITY_FIXTURES],
        stages=[Stage.model_validate(item) for item in STAGE_FIXTURES],
    )
