"""
VisaDesk
========

Back-office toolkit for processing UAE residence / work-visa cases through
the fixed ten-stage pipeline (offer letter → … → Emirates ID delivery) and
for tracking physical Emirates-ID-card custody.

Import structure
----------------
`import visadesk` is intentionally cheap: the domain modules depend only on
the stdlib and *pydantic*.  Persistence (*sqlmodel*) and plotting
(*matplotlib*) are only imported when you explicitly access
:pymod:`visadesk.db`, :pymod:`visadesk.gateway_db` or :pymod:`visadesk.viz`.

Sub-modules
~~~~~~~~~~~
- :pymod:`visadesk.models`     – ``Case`` / ``StageRecord`` dataclasses + enums
- :pymod:`visadesk.errors`     – ``TransitionError`` taxonomy and ``Result``
- :pymod:`visadesk.stages`     – the ten stage definitions (StageSchema)
- :pymod:`visadesk.lookups`    – reference-data snapshot + provider lifecycle
- :pymod:`visadesk.charges`    – charge-entity resolution
- :pymod:`visadesk.lifecycle`  – stage transition engine (`apply_update`)
- :pymod:`visadesk.custody`    – Pending → Received → Delivered card custody
- :pymod:`visadesk.service`    – boundary operations over a gateway
- :pymod:`visadesk.gateway`    – abstract ``CaseGateway``
- :pymod:`visadesk.registry`   – in-memory case gateway
- :pymod:`visadesk.gateway_db` – SQLite case gateway (over :pymod:`visadesk.db`)
- :pymod:`visadesk.settings`   – env constants + pydantic ``Settings``
- :pymod:`visadesk.viz`        – matplotlib queue charts

Quick start
-----------
>>> from visadesk.models import Case, ChargeOption
>>> from visadesk.lifecycle import apply_update
>>> case = Case(1, "JOHN DOE")
>>> res = apply_update(case, 1, {"mbNumber": "MB123", "company": 5,
...                              "offerLetterCost": 50, "offerLetterCostCur": 1},
...                    lookups, charge_option=ChargeOption.ACCOUNT,
...                    charged_entity_id=7, mark_complete=True)
>>> res.unwrap().progress
1

"""

__all__ = [
    "models",
    "errors",
    "stages",
    "lookups",
    "charges",
    "lifecycle",
    "custody",
    "service",
    "gateway",
    "registry",
]

__version__ = "0.1.0"
