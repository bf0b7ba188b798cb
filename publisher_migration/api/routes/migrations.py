"""Publisher migration execution, status and validation endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

from ...models.migration import MigrationConfig
from ...orchestrator import MigrationBlockedError
from ...services.validator import render_html_report
from ..dependencies import ServiceContainer, get_container
from ..models import PublisherMigrationRequest, PublisherMigrationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/publishers", response_model=PublisherMigrationResponse)
def run_publisher_migration(
    data: PublisherMigrationRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Run the full publisher migration workflow."""
    config = MigrationConfig(
        dry_run=data.dry_run,
        batch_size=data.batch_size,
        send_invitations=data.send_invitations,
        validate_first=data.validate_first,
    )

    try:
        outcome = container.migration.execute_full_migration(config)
    except MigrationBlockedError as e:
        logger.warning(f"Publisher migration blocked: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    except Exception as e:
        logger.exception("Publisher migration failed")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e) or "Migration failed"})

    return PublisherMigrationResponse(
        success=outcome.success,
        dry_run=outcome.dry_run,
        stats=outcome.stats.to_dict(),
        message=outcome.message,
        session_id=outcome.session_id,
        snapshot_id=outcome.snapshot_id,
    )


@router.get("/publishers/status")
def get_publisher_migration_status(container: ServiceContainer = Depends(get_container)):
    """Get analytics, recent sessions and validation readiness."""
    try:
        return container.migration.get_migration_status()
    except Exception as e:
        logger.exception("Failed to load migration status")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/validation")
def get_validation_report(container: ServiceContainer = Depends(get_container)):
    """Validate the legacy data set."""
    return container.validator.validate_all().to_dict()


@router.get("/validation/html", response_class=HTMLResponse)
def get_validation_report_html(container: ServiceContainer = Depends(get_container)):
    """Validation report rendered as an HTML page."""
    return HTMLResponse(render_html_report(container.validator.validate_all()))
