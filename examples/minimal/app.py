"""Minimal example of entity-workflows integration.

This example runs the workflow API next to a small invoice resource. On
startup it stores an invoice approval workflow for ``demo-org``; invoices
created through ``POST /invoices`` can then be moved through it with the
``/workflows`` endpoints.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload
"""

from __future__ import annotations

from typing import Any

from litestar import Controller, Litestar, get, post
from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
from litestar.status_codes import HTTP_201_CREATED
from sqlalchemy.ext.asyncio import AsyncSession

from entity_workflows import WorkflowPlugin, WorkflowPluginConfig, WorkflowService
from entity_workflows.db.models import EntityModel

ORGANIZATION_ID = "demo-org"

# =============================================================================
# Workflow Configuration
# =============================================================================

INVOICE_WORKFLOW: dict[str, Any] = {
    "states": [
        {"code": "DRAFT", "name": "Draft", "is_initial": True},
        {"code": "SUBMITTED", "name": "Submitted"},
        {"code": "APPROVED", "name": "Approved", "is_final": True},
        {"code": "REJECTED", "name": "Rejected", "is_final": True},
    ],
    "transitions": [
        {"from_state": "DRAFT", "to_state": "SUBMITTED", "name": "submit"},
        {"from_state": "SUBMITTED", "to_state": "APPROVED", "name": "approve", "required_approvals": 1},
        {"from_state": "SUBMITTED", "to_state": "REJECTED", "name": "reject"},
    ],
}


# =============================================================================
# API Controller
# =============================================================================


class InvoiceController(Controller):
    """Creates the business entities the workflow acts on."""

    path = "/invoices"
    tags = ["Invoices"]

    @post("/", status_code=HTTP_201_CREATED)
    async def create_invoice(self, data: dict[str, Any], db_session: AsyncSession) -> dict[str, Any]:
        """Create an invoice entity."""
        invoice = EntityModel(
            organization_id=ORGANIZATION_ID,
            entity_type="INVOICE",
            entity_name=str(data.get("name") or "Invoice"),
            entity_code=data.get("code"),
            metadata_={"amount": data.get("amount", 0)},
        )
        db_session.add(invoice)
        await db_session.flush()
        invoice_id = str(invoice.id)
        await db_session.commit()
        return {"id": invoice_id, "organization_id": ORGANIZATION_ID}


# =============================================================================
# Application
# =============================================================================

db_config = SQLAlchemyAsyncConfig(
    connection_string="sqlite+aiosqlite:///:memory:",
    metadata=EntityModel.metadata,
    create_all=True,
)


async def configure_invoice_workflow(app: Litestar) -> None:
    """Store the invoice workflow once the tables exist."""
    async with db_config.get_session() as session:
        await WorkflowService(session).save_config(ORGANIZATION_ID, "INVOICE", INVOICE_WORKFLOW, "system")


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


app = Litestar(
    route_handlers=[InvoiceController, health_check],
    plugins=[SQLAlchemyPlugin(config=db_config), WorkflowPlugin(config=WorkflowPluginConfig())],
    on_startup=[configure_invoice_workflow],
    debug=True,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
