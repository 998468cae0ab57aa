"""
api/routes/v1/dashboard.py -- Page payload endpoints for the signed-in user.

  GET /api/v1/dashboard    -- {user} with roles when they could be loaded
  GET /api/v1/evaluations  -- {pendingEvaluations, stats} (teacher, manager, admin)

These return exactly what the HTML pages render (portal.pages), so browser
code can refresh a page's data without a full reload. Read-only.
"""

from fastapi import APIRouter, Depends

from api.models import DashboardResponse, EvaluationsResponse
from auth.dependencies import RequestContext, get_request_context, require_role
from auth.roles import EVALUATOR_ROLES, load_user_with_roles
from portal.pages import dashboard_payload, evaluations_payload

# Auth policy:
# - GET /api/v1/dashboard:   requires auth
# - GET /api/v1/evaluations: requires auth + grading role
router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse, response_model_exclude_unset=True)
def get_dashboard(ctx: RequestContext = Depends(get_request_context)) -> dict:  # noqa: B008
    """Return the dashboard payload.

    A failed role lookup is logged and the payload is returned without roles.
    """
    user = load_user_with_roles(ctx.user, ctx.store, ctx.log)
    return dashboard_payload(user)


@router.get("/evaluations", response_model=EvaluationsResponse)
def get_evaluations(ctx: RequestContext = Depends(require_role(*EVALUATOR_ROLES))) -> dict:  # noqa: B008
    """Return evaluations awaiting grading. Currently always empty."""
    return evaluations_payload()
