"""
INFOFIX API

FastAPI application with:
- Ticket list, intake, edit and delete with workflow checks
- Review queue for customer submissions
- Dashboard statistics
- Task board and leaderboard
- Calendar of scheduled jobs and tasks
- Customer database
- Admin settings: lookup lists, SLA thresholds, team

The acting user is passed in the X-User-Id header.
"""

from datetime import date
from typing import Optional, List

from fastapi import APIRouter, FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..config import SERVICE_NAME, CORS_ORIGINS, default_sla
from ..logging_conf import configure_logging
from ..models import (
    Ticket,
    Task,
    User,
    Customer,
    AppSettings,
    SLAConfig,
    TaskCategory,
    TaskPriority,
)
from ..services import (
    InfofixError,
    NotFound,
    PermissionDenied,
    WorkflowError,
    TicketService,
    TaskService,
    ScheduleService,
    CustomerService,
    SettingsService,
    TransitionContext,
)
from ..store import (
    InMemoryTicketStore,
    InMemoryTaskStore,
    InMemoryUserStore,
    InMemoryCustomerStore,
)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CreateTicketRequest(BaseModel):
    customer_id: Optional[str] = None
    name: str = ""
    number: str = ""
    email: str = ""
    address: str = ""
    device_type: str
    brand: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    charger_included: bool = False
    device_description: Optional[str] = None
    store: str
    status: Optional[str] = None
    priority: str = "Medium"
    issue_description: str = ""
    estimated_amount: float = 0.0
    hold_reason: Optional[str] = None
    warranty: bool = False
    bill_number: Optional[str] = None
    assigned_to_id: Optional[str] = None
    scheduled_date: Optional[str] = None
    rejection_note: Optional[str] = None


class UpdateTicketRequest(BaseModel):
    """Only the fields sent are changed."""
    changes: dict
    rejection_note: Optional[str] = None
    transfer_note: Optional[str] = None


class RejectTicketRequest(BaseModel):
    note: Optional[str] = None


class CreateTaskRequest(BaseModel):
    title: str
    description: Optional[str] = None
    date: str
    time: Optional[str] = None
    assigned_to_id: Optional[str] = None
    type: TaskCategory = TaskCategory.GENERAL
    priority: TaskPriority = TaskPriority.NORMAL


class CreateCustomerRequest(BaseModel):
    name: str = ""
    email: str = ""
    mobile: str = ""
    address: str = ""
    city: Optional[str] = None
    pincode: Optional[str] = None
    notes: List[str] = []
    photo: Optional[str] = None


class UpdateCustomerRequest(BaseModel):
    changes: dict


class ItemRequest(BaseModel):
    name: str


class SLARequest(BaseModel):
    days: float


# =============================================================================
# APP SETUP
# =============================================================================

_STATUS_CODES = {
    NotFound: status.HTTP_404_NOT_FOUND,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    WorkflowError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def create_app(
    ticket_repo=None,
    task_repo=None,
    user_repo=None,
    customer_repo=None,
    settings: Optional[AppSettings] = None
) -> FastAPI:
    """Build the app around the given stores, in-memory ones by default."""
    log = configure_logging()

    app = FastAPI(
        title="INFOFIX Services CRM",
        description="Repair-shop ticket workflow, SLA tracking and task board",
        version=__version__
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    settings = settings or AppSettings(sla=default_sla())
    user_repo = user_repo or InMemoryUserStore()
    task_repo = task_repo or InMemoryTaskStore()
    ticket_repo = ticket_repo or InMemoryTicketStore()
    customer_repo = customer_repo or InMemoryCustomerStore()

    app.state.users = user_repo
    app.state.settings = settings
    app.state.tickets = TicketService(ticket_repo, user_repo, customer_repo, settings=settings)
    app.state.tasks = TaskService(task_repo, user_repo)
    app.state.schedule = ScheduleService(app.state.tasks.rules)
    app.state.customers = CustomerService(customer_repo, user_repo)
    app.state.admin = SettingsService(settings, ticket_repo, user_repo)

    @app.exception_handler(InfofixError)
    async def infofix_error_handler(request: Request, exc: InfofixError):
        code = _STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
        log.info("request refused", extra={"path": request.url.path, "code": exc.code})
        return JSONResponse(
            status_code=code,
            content={"detail": {"code": exc.code, "message": exc.message}}
        )

    app.include_router(_routes())
    return app


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def current_user(request: Request, x_user_id: str = Header(...)) -> User:
    user = await request.app.state.users.get(x_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


def _tickets(request: Request) -> TicketService:
    return request.app.state.tickets


def _tasks(request: Request) -> TaskService:
    return request.app.state.tasks


def _customers(request: Request) -> CustomerService:
    return request.app.state.customers


def _admin(request: Request) -> SettingsService:
    return request.app.state.admin


# =============================================================================
# ROUTES
# =============================================================================

def _routes():
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__
        }

    # -------------------------------------------------------------------------
    # Tickets
    # -------------------------------------------------------------------------

    @router.get("/tickets", response_model=List[Ticket])
    async def list_tickets(
        search: Optional[str] = None,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        """
        Tickets the user may see.

        Pending Approval tickets are served by /tickets/review instead.
        """
        return await tickets.list_tickets(user.id, search)

    @router.post("/tickets", status_code=status.HTTP_201_CREATED, response_model=Ticket)
    async def create_ticket(
        request: CreateTicketRequest,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        fields = request.model_dump(exclude={"rejection_note"})
        return await tickets.create_ticket(
            user.id,
            TransitionContext(rejection_note=request.rejection_note),
            **fields
        )

    @router.get("/tickets/review", response_model=List[Ticket])
    async def review_queue(
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        return await tickets.review_queue(user.id)

    @router.patch("/tickets/{ticket_id}", response_model=Ticket)
    async def update_ticket(
        ticket_id: str,
        request: UpdateTicketRequest,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        """
        Edit a ticket.

        Rejecting needs rejection_note, changing store needs transfer_note.
        Choosing a hold_reason puts the ticket On Hold.
        """
        context = TransitionContext(
            rejection_note=request.rejection_note,
            transfer_note=request.transfer_note
        )
        return await tickets.update_ticket(ticket_id, user.id, request.changes, context)

    @router.delete("/tickets/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_ticket(
        ticket_id: str,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        await tickets.delete_ticket(ticket_id, user.id)

    @router.post("/tickets/{ticket_id}/approve", response_model=Ticket)
    async def approve_ticket(
        ticket_id: str,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        return await tickets.approve_ticket(ticket_id, user.id)

    @router.post("/tickets/{ticket_id}/reject", response_model=Ticket)
    async def reject_ticket(
        ticket_id: str,
        request: RejectTicketRequest,
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        return await tickets.reject_ticket(ticket_id, user.id, request.note)

    @router.get("/dashboard")
    async def dashboard(
        user: User = Depends(current_user),
        tickets: TicketService = Depends(_tickets)
    ):
        stats = await tickets.dashboard(user.id)
        urgent = tickets.engine.urgent_tickets(
            tickets.engine.visible_to(await tickets.ticket_repo.list(), user)
        )
        return {
            "stats": stats,
            "urgent": [{"id": t.id, "ticket_id": t.ticket_id, "status": t.status} for t in urgent]
        }

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    @router.get("/tasks", response_model=List[Task])
    async def list_tasks(
        user: User = Depends(current_user),
        tasks: TaskService = Depends(_tasks)
    ):
        return await tasks.list_tasks(user.id)

    @router.post("/tasks", status_code=status.HTTP_201_CREATED, response_model=Task)
    async def create_task(
        request: CreateTaskRequest,
        user: User = Depends(current_user),
        tasks: TaskService = Depends(_tasks)
    ):
        return await tasks.create_task(user.id, **request.model_dump())

    @router.get("/tasks/leaderboard")
    async def leaderboard(
        monthly: bool = False,
        user: User = Depends(current_user),
        tasks: TaskService = Depends(_tasks)
    ):
        """Points per assignee. monthly=true limits it to this month's tasks."""
        return await tasks.leaderboard(monthly)

    @router.post("/tasks/{task_id}/toggle", response_model=Task)
    async def toggle_task(
        task_id: str,
        user: User = Depends(current_user),
        tasks: TaskService = Depends(_tasks)
    ):
        return await tasks.toggle_status(task_id, user.id)

    @router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_task(
        task_id: str,
        user: User = Depends(current_user),
        tasks: TaskService = Depends(_tasks)
    ):
        await tasks.delete_task(task_id, user.id)

    # -------------------------------------------------------------------------
    # Schedule
    # -------------------------------------------------------------------------

    @router.get("/schedule")
    async def schedule(
        request: Request,
        day: Optional[date] = None,
        user: User = Depends(current_user)
    ):
        """
        Calendar events for the user, optionally narrowed to one day,
        plus this month's task figures.
        """
        state = request.app.state
        members = await state.users.list()
        all_tasks = await state.tasks.task_repo.list()
        events = state.schedule.events(
            await state.tickets.ticket_repo.list(), all_tasks, user, members
        )
        if day is not None:
            events = state.schedule.events_on(events, day.isoformat())
        return {
            "events": events,
            "month": state.schedule.monthly_stats(all_tasks, user, state.tickets.clock())
        }


    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    @router.get("/customers", response_model=List[Customer])
    async def list_customers(
        search: Optional[str] = None,
        user: User = Depends(current_user),
        customers: CustomerService = Depends(_customers)
    ):
        return await customers.search(user.id, search)

    @router.post("/customers", status_code=status.HTTP_201_CREATED, response_model=Customer)
    async def create_customer(
        request: CreateCustomerRequest,
        user: User = Depends(current_user),
        customers: CustomerService = Depends(_customers)
    ):
        return await customers.create_customer(user.id, **request.model_dump())

    @router.patch("/customers/{customer_id}", response_model=Customer)
    async def update_customer(
        customer_id: str,
        request: UpdateCustomerRequest,
        user: User = Depends(current_user),
        customers: CustomerService = Depends(_customers)
    ):
        return await customers.update_customer(customer_id, user.id, request.changes)

    @router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_customer(
        customer_id: str,
        user: User = Depends(current_user),
        customers: CustomerService = Depends(_customers)
    ):
        await customers.delete_customer(customer_id, user.id)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @router.get("/settings", response_model=AppSettings)
    async def get_settings(request: Request, user: User = Depends(current_user)):
        """Lookup lists the ticket forms need, readable by any signed-in user."""
        return request.app.state.settings

    @router.post("/settings/{key}", status_code=status.HTTP_201_CREATED)
    async def add_settings_item(
        key: str,
        request: ItemRequest,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        return await admin.add_item(user.id, key, request.name)

    @router.patch("/settings/{key}/{item_id}")
    async def rename_settings_item(
        key: str,
        item_id: str,
        request: ItemRequest,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        return await admin.rename_item(user.id, key, item_id, request.name)

    @router.delete("/settings/{key}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_settings_item(
        key: str,
        item_id: str,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        await admin.remove_item(user.id, key, item_id)

    @router.put("/sla/{priority}", response_model=SLAConfig)
    async def update_sla(
        priority: str,
        request: SLARequest,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        return await admin.update_sla(user.id, priority, request.days)

    @router.put("/team/{member_id}", response_model=User)
    async def save_member(
        member_id: str,
        member: User,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        return await admin.save_member(user.id, member.model_copy(update={"id": member_id}))

    @router.delete("/team/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_member(
        member_id: str,
        user: User = Depends(current_user),
        admin: SettingsService = Depends(_admin)
    ):
        await admin.delete_member(user.id, member_id)

    return router


app = create_app()


# =============================================================================
# RUN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
