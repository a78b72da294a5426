import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, List, Dict, Any

from fastapi import FastAPI, APIRouter, Depends, File, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import ai_prompts
import database
import gemini_client
from auth import (
    create_token,
    current_user_id,
    get_current_user,
    hash_password,
    public_user,
    verify_password,
)
from config import settings
from database import (
    count_documents,
    create_document,
    delete_owned,
    document_fields,
    find_owned,
    get_db,
    get_documents,
    serialize_document,
    to_object_id,
    update_owned,
)
from exceptions import (
    BadRequestException,
    AuthenticationException,
    ConfigurationException,
    GenerationException,
    NotFoundException,
    StorageException,
)
from logging_config import setup_logging
from media_storage import ALLOWED_MIME_TYPES, media_storage
from schemas import (
    HISTORY_CONTENT_MAX,
    HISTORY_TYPES,
    PROJECT_STATUSES,
    TASK_PRIORITIES,
    THEME_PREFERENCES,
    Client,
    History,
    Media,
    Payment,
    Project,
    Task,
    User,
    is_overdue,
    utcnow,
)

setup_logging()
logger = logging.getLogger(__name__)

URL_RE = re.compile(r"^https?://.+")
PAYMENT_STATUSES = ("paid", "pending", "overdue")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            database.ensure_indexes()
        except PyMongoError as e:
            logger.error("Could not ensure MongoDB indexes: %s", e)
    if settings.JWT_SECRET == "dev-secret-change-me" and not settings.is_development:
        logger.warning("JWT_SECRET is using the development default")
    logger.info("Gemini API: %s", "configured" if gemini_client.is_configured() else "not configured")
    logger.info("Cloudinary: %s", "configured" if media_storage.is_configured() else "not configured (optional)")
    yield


app = FastAPI(title="CreatorFlow API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, error: Optional[str] = None,
                   headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def validation_message(errors) -> str:
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        msg = err.get("msg", "Invalid value")
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return ", ".join(messages) or "Validation failed"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return error_response(exc.status_code, str(message), getattr(exc, "error", None), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    return error_response(400, validation_message(exc.errors()))


@app.exception_handler(ValidationError)
async def document_validation_handler(request, exc: ValidationError):
    return error_response(400, validation_message(exc.errors()))


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request, exc: DuplicateKeyError):
    key_value = (exc.details or {}).get("keyValue") or {}
    if "email" in key_value:
        return error_response(400, "Email already exists")
    return error_response(400, "Duplicate value")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Server error", str(exc) if settings.is_development else None)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def record_history(user_id: str, history_type: str, content: str, metadata: Optional[dict] = None) -> None:
    """Best effort: a failed history write never fails the request."""
    try:
        create_document("history", History(
            user_id=user_id,
            type=history_type,
            content=content[:HISTORY_CONTENT_MAX],
            metadata=metadata or {},
        ))
    except (ValidationError, PyMongoError, ConfigurationException) as e:
        logger.warning("History save failed: %s", e)


def require_owned(collection_name: str, doc_id: Any, user_id: str, label: str) -> Dict[str, Any]:
    doc = find_owned(collection_name, doc_id, user_id, label.lower())
    if not doc:
        raise NotFoundException(label)
    return doc


def owned_reference(collection_name: str, doc_id: Optional[str], user_id: str, label: str) -> Optional[str]:
    """Check an optional foreign id belongs to the caller; returns it normalised."""
    if is_blank(doc_id):
        return None
    return str(require_owned(collection_name, doc_id, user_id, label)["_id"])


def apply_update(collection_name: str, model_cls, doc_id: str, user_id: str,
                 changes: Dict[str, Any], label: str) -> Dict[str, Any]:
    """Re-validate the stored document merged with changes, then write it back."""
    existing = require_owned(collection_name, doc_id, user_id, label)
    validated = model_cls(**{**document_fields(existing), **changes})
    updated = update_owned(collection_name, doc_id, user_id, validated.model_dump(), label.lower())
    if not updated:
        raise NotFoundException(label)
    return updated


def validate_links(links: Optional[List[Dict[str, Any]]]) -> None:
    for link in links or []:
        url = link.get("url") if isinstance(link, dict) else None
        if url and not URL_RE.match(str(url)):
            raise BadRequestException("All links must have valid URLs")


def serialize_payment(doc: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    data = serialize_document(doc)
    data["is_overdue"] = is_overdue(doc.get("paid", False), doc.get("due_date"), now)
    return data


def listing(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"success": True, "count": len(items), "data": items}


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    theme_preference: Optional[str] = None


class ThemeUpdate(BaseModel):
    theme_preference: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ClientIn(BaseModel):
    name: Optional[str] = None
    niche: Optional[str] = None
    links: Optional[List[Dict[str, Any]]] = None
    payment_rate: Optional[float] = None
    notes: Optional[str] = None


class ProjectIn(BaseModel):
    client_id: Optional[str] = None
    title: Optional[str] = None
    script: Optional[str] = None
    captions: Optional[List[str]] = None
    hashtags: Optional[List[str]] = None
    status: Optional[str] = None
    planned_date: Optional[datetime] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class TaskIn(BaseModel):
    project_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    completed: Optional[bool] = None


class PaymentIn(BaseModel):
    client_id: Optional[str] = None
    amount: Optional[float] = None
    due_date: Optional[datetime] = None
    paid: Optional[bool] = None


class MediaUpdate(BaseModel):
    filename: Optional[str] = None


class IdeasRequest(BaseModel):
    prompt: Optional[str] = None
    niche: Optional[str] = None
    count: Optional[Any] = 5


class HooksRequest(BaseModel):
    topic: Optional[str] = None
    count: Optional[Any] = 5


class ScriptRequest(BaseModel):
    topic: Optional[str] = None
    length: Optional[str] = "medium"


class CaptionsRequest(BaseModel):
    topic: Optional[str] = None
    tone: Optional[str] = "engaging"
    count: Optional[Any] = 5


class HashtagsRequest(BaseModel):
    niche: Optional[str] = None
    count: Optional[Any] = 10


class ImproveRequest(BaseModel):
    script: Optional[Any] = None


@app.get("/")
def root():
    return {"success": True, "message": "CreatorFlow API is running!"}


@app.get("/api/health")
def health():
    response = {
        "backend": "running",
        "database": "not configured",
        "database_name": None,
        "collections": [],
        "gemini": "configured" if gemini_client.is_configured() else "not configured",
        "image_storage": "configured" if media_storage.is_configured() else "not configured",
    }
    if database.db is not None:
        response["database_name"] = getattr(database.db, "name", None)
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "connected"
        except PyMongoError as e:
            response["database"] = f"error: {str(e)[:50]}"
    return response


auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.get("/test")
def auth_test():
    return {"success": True, "message": "Auth routes are working"}


@auth_router.post("/register", status_code=201)
def register(payload: RegisterRequest):
    if is_blank(payload.name) or is_blank(payload.email) or not payload.password:
        raise BadRequestException("Please provide name, email, and password")
    if len(payload.password) < 6:
        raise BadRequestException("Password must be at least 6 characters long")

    email = payload.email.strip().lower()
    users = get_db()["user"]
    if users.find_one({"email": email}):
        raise BadRequestException("User with this email already exists")

    user_doc = User(name=payload.name, email=email, password_hash=hash_password(payload.password))
    user = create_document("user", user_doc)
    logger.info("Registered user %s", user["_id"])

    return {
        "success": True,
        "message": "User registered successfully",
        "token": create_token(str(user["_id"])),
        "user": public_user(user),
    }


@auth_router.post("/login")
def login(payload: LoginRequest):
    if is_blank(payload.email) or not payload.password:
        raise BadRequestException("Please provide email and password")

    user = get_db()["user"].find_one({"email": payload.email.strip().lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise AuthenticationException("Invalid email or password")

    return {
        "success": True,
        "message": "Login successful",
        "token": create_token(str(user["_id"])),
        "user": public_user(user),
    }


def _update_user(user: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    validated = User(**{**document_fields(user), **changes})
    fields = validated.model_dump()
    fields["updated_at"] = utcnow()
    updated = get_db()["user"].find_one_and_update(
        {"_id": user["_id"]},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundException("User")
    return updated


@auth_router.get("/me")
def get_me(user: dict = Depends(get_current_user)):
    return {"success": True, "user": public_user(user)}


@auth_router.put("/me")
def update_me(payload: ProfileUpdate, user: dict = Depends(get_current_user)):
    changes = {k: v for k, v in payload.model_dump().items() if not is_blank(v)}
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
        taken = get_db()["user"].find_one({"email": changes["email"], "_id": {"$ne": user["_id"]}})
        if taken:
            raise BadRequestException("Email already exists")
    updated = _update_user(user, changes) if changes else user
    return {"success": True, "user": public_user(updated)}


@auth_router.put("/theme")
def update_theme(payload: ThemeUpdate, user: dict = Depends(get_current_user)):
    if payload.theme_preference not in THEME_PREFERENCES:
        raise BadRequestException("Invalid theme. Must be 'light', 'dark', or 'system'")
    updated = _update_user(user, {"theme_preference": payload.theme_preference})
    return {"success": True, "theme_preference": updated["theme_preference"]}


@auth_router.put("/password")
def change_password(payload: PasswordChange, user: dict = Depends(get_current_user)):
    if not payload.current_password or not payload.new_password:
        raise BadRequestException("Please provide current_password and new_password")
    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise AuthenticationException("Current password is incorrect")
    if len(payload.new_password) < 6:
        raise BadRequestException("Password must be at least 6 characters long")
    _update_user(user, {"password_hash": hash_password(payload.new_password)})
    return {"success": True, "message": "Password updated successfully"}


clients_router = APIRouter(prefix="/api/clients", tags=["clients"])


@clients_router.get("")
def list_clients(search: Optional[str] = None, user_id: str = Depends(current_user_id)):
    query: Dict[str, Any] = {"user_id": user_id}
    if not is_blank(search):
        query["name"] = {"$regex": re.escape(search.strip()), "$options": "i"}
    return listing([serialize_document(doc) for doc in get_documents("client", query)])


@clients_router.get("/{client_id}")
def get_client(client_id: str, user_id: str = Depends(current_user_id)):
    return {"success": True, "data": serialize_document(require_owned("client", client_id, user_id, "Client"))}


@clients_router.post("", status_code=201)
def create_client(payload: ClientIn, user_id: str = Depends(current_user_id)):
    if is_blank(payload.name) or is_blank(payload.niche) or payload.payment_rate is None:
        raise BadRequestException("Please provide name, niche, and payment_rate")
    if payload.payment_rate < 0:
        raise BadRequestException("Payment rate must be a positive number")
    validate_links(payload.links)

    client = create_document("client", Client(
        user_id=user_id,
        name=payload.name,
        niche=payload.niche,
        links=payload.links or [],
        payment_rate=payload.payment_rate,
        notes=payload.notes or "",
    ))
    record_history(user_id, "client", f"Added client {client['name']}", {"client_id": str(client["_id"])})
    return {"success": True, "message": "Client created successfully", "data": serialize_document(client)}


@clients_router.put("/{client_id}")
def update_client(client_id: str, payload: ClientIn, user_id: str = Depends(current_user_id)):
    changes = payload.model_dump(exclude_unset=True)
    if "payment_rate" in changes and (changes["payment_rate"] is None or changes["payment_rate"] < 0):
        raise BadRequestException("Payment rate must be a positive number")
    if "links" in changes:
        validate_links(changes["links"])
        changes["links"] = changes["links"] or []
    if "notes" in changes and changes["notes"] is None:
        changes["notes"] = ""

    client = apply_update("client", Client, client_id, user_id, changes, "Client")
    return {"success": True, "message": "Client updated successfully", "data": serialize_document(client)}


@clients_router.delete("/{client_id}")
def delete_client(client_id: str, user_id: str = Depends(current_user_id)):
    client = delete_owned("client", client_id, user_id, "client")
    if not client:
        raise NotFoundException("Client")
    record_history(user_id, "client", f"Deleted client {client['name']}", {"client_id": client_id})
    return {"success": True, "message": "Client deleted successfully", "data": {}}


projects_router = APIRouter(prefix="/api/projects", tags=["projects"])


@projects_router.get("")
def list_projects(status: Optional[str] = None, client_id: Optional[str] = None,
                  user_id: str = Depends(current_user_id)):
    query: Dict[str, Any] = {"user_id": user_id}
    if status:
        if status not in PROJECT_STATUSES:
            raise BadRequestException(f"Status must be one of: {', '.join(PROJECT_STATUSES)}")
        query["status"] = status
    if client_id:
        query["client_id"] = str(to_object_id(client_id, "client"))
    return listing([serialize_document(doc) for doc in get_documents("project", query)])


@projects_router.get("/{project_id}")
def get_project(project_id: str, user_id: str = Depends(current_user_id)):
    return {"success": True, "data": serialize_document(require_owned("project", project_id, user_id, "Project"))}


@projects_router.post("", status_code=201)
def create_project(payload: ProjectIn, user_id: str = Depends(current_user_id)):
    if is_blank(payload.title):
        raise BadRequestException("Please provide a project title")

    fields = payload.model_dump(exclude_none=True)
    fields["client_id"] = owned_reference("client", payload.client_id, user_id, "Client")
    project = create_document("project", Project(user_id=user_id, **fields))
    record_history(user_id, "project", f"Created project {project['title']}", {"project_id": str(project["_id"])})
    return {"success": True, "message": "Project created successfully", "data": serialize_document(project)}


@projects_router.put("/{project_id}")
def update_project(project_id: str, payload: ProjectIn, user_id: str = Depends(current_user_id)):
    changes = payload.model_dump(exclude_unset=True)
    if "client_id" in changes:
        changes["client_id"] = owned_reference("client", changes["client_id"], user_id, "Client")
    for list_field in ("captions", "hashtags"):
        if list_field in changes and changes[list_field] is None:
            changes[list_field] = []
    if "script" in changes and changes["script"] is None:
        changes["script"] = ""

    project = apply_update("project", Project, project_id, user_id, changes, "Project")
    return {"success": True, "message": "Project updated successfully", "data": serialize_document(project)}


@projects_router.patch("/{project_id}/status")
def move_project(project_id: str, payload: StatusUpdate, user_id: str = Depends(current_user_id)):
    if payload.status not in PROJECT_STATUSES:
        raise BadRequestException(f"Status must be one of: {', '.join(PROJECT_STATUSES)}")
    project = apply_update("project", Project, project_id, user_id, {"status": payload.status}, "Project")
    return {"success": True, "data": serialize_document(project)}


@projects_router.delete("/{project_id}")
def delete_project(project_id: str, user_id: str = Depends(current_user_id)):
    project = delete_owned("project", project_id, user_id, "project")
    if not project:
        raise NotFoundException("Project")
    record_history(user_id, "project", f"Deleted project {project['title']}", {"project_id": project_id})
    return {"success": True, "message": "Project deleted successfully", "data": {}}


tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])

TASK_ORDER = [("due_date", ASCENDING), ("_id", ASCENDING)]


@tasks_router.get("")
def list_tasks(completed: Optional[bool] = None, priority: Optional[str] = None,
               project_id: Optional[str] = None, user_id: str = Depends(current_user_id)):
    query: Dict[str, Any] = {"user_id": user_id}
    if completed is not None:
        query["completed"] = completed
    if priority:
        if priority not in TASK_PRIORITIES:
            raise BadRequestException(f"Priority must be one of: {', '.join(TASK_PRIORITIES)}")
        query["priority"] = priority
    if project_id:
        query["project_id"] = str(to_object_id(project_id, "project"))
    return listing([serialize_document(doc) for doc in get_documents("task", query, sort=TASK_ORDER)])


@tasks_router.get("/{task_id}")
def get_task(task_id: str, user_id: str = Depends(current_user_id)):
    return {"success": True, "data": serialize_document(require_owned("task", task_id, user_id, "Task"))}


@tasks_router.post("", status_code=201)
def create_task(payload: TaskIn, user_id: str = Depends(current_user_id)):
    if is_blank(payload.title) or payload.due_date is None:
        raise BadRequestException("Please provide title and due_date")

    fields = payload.model_dump(exclude_none=True)
    fields["project_id"] = owned_reference("project", payload.project_id, user_id, "Project")
    task = create_document("task", Task(user_id=user_id, **fields))
    record_history(user_id, "task", f"Created task {task['title']}", {"task_id": str(task["_id"])})
    return {"success": True, "message": "Task created successfully", "data": serialize_document(task)}


@tasks_router.put("/{task_id}")
def update_task(task_id: str, payload: TaskIn, user_id: str = Depends(current_user_id)):
    changes = payload.model_dump(exclude_unset=True)
    if "project_id" in changes:
        changes["project_id"] = owned_reference("project", changes["project_id"], user_id, "Project")
    if "description" in changes and changes["description"] is None:
        changes["description"] = ""

    task = apply_update("task", Task, task_id, user_id, changes, "Task")
    return {"success": True, "message": "Task updated successfully", "data": serialize_document(task)}


@tasks_router.patch("/{task_id}/toggle")
def toggle_task(task_id: str, user_id: str = Depends(current_user_id)):
    task = require_owned("task", task_id, user_id, "Task")
    updated = update_owned("task", task_id, user_id, {"completed": not task.get("completed", False)}, "task")
    if not updated:
        raise NotFoundException("Task")
    return {"success": True, "data": serialize_document(updated)}


@tasks_router.delete("/{task_id}")
def delete_task(task_id: str, user_id: str = Depends(current_user_id)):
    task = delete_owned("task", task_id, user_id, "task")
    if not task:
        raise NotFoundException("Task")
    record_history(user_id, "task", f"Deleted task {task['title']}", {"task_id": task_id})
    return {"success": True, "message": "Task deleted successfully", "data": {}}


payments_router = APIRouter(prefix="/api/payments", tags=["payments"])


def payment_status_filter(status: str, now: datetime) -> Dict[str, Any]:
    if status == "paid":
        return {"paid": True}
    if status == "overdue":
        return {"paid": False, "due_date": {"$lt": now}}
    return {"paid": False, "due_date": {"$gte": now}}


@payments_router.get("")
def list_payments(status: Optional[str] = None, client_id: Optional[str] = None,
                  user_id: str = Depends(current_user_id)):
    now = utcnow()
    query: Dict[str, Any] = {"user_id": user_id}
    if status:
        if status not in PAYMENT_STATUSES:
            raise BadRequestException(f"Status must be one of: {', '.join(PAYMENT_STATUSES)}")
        query.update(payment_status_filter(status, now))
    if client_id:
        query["client_id"] = str(to_object_id(client_id, "client"))
    return listing([serialize_payment(doc, now) for doc in get_documents("payment", query)])


@payments_router.get("/summary")
def payments_summary(user_id: str = Depends(current_user_id)):
    now = utcnow()
    summary = {status: {"count": 0, "total": 0.0} for status in PAYMENT_STATUSES}
    for doc in get_documents("payment", {"user_id": user_id}):
        if doc.get("paid"):
            bucket = "paid"
        elif is_overdue(False, doc.get("due_date"), now):
            bucket = "overdue"
        else:
            bucket = "pending"
        summary[bucket]["count"] += 1
        summary[bucket]["total"] += float(doc.get("amount", 0))
    return {"success": True, "data": summary}


@payments_router.get("/{payment_id}")
def get_payment(payment_id: str, user_id: str = Depends(current_user_id)):
    return {"success": True, "data": serialize_payment(require_owned("payment", payment_id, user_id, "Payment"))}


@payments_router.post("", status_code=201)
def create_payment(payload: PaymentIn, user_id: str = Depends(current_user_id)):
    if is_blank(payload.client_id) or payload.amount is None or payload.due_date is None:
        raise BadRequestException("Please provide client_id, amount, and due_date")

    fields = payload.model_dump(exclude_none=True)
    fields["client_id"] = owned_reference("client", payload.client_id, user_id, "Client")
    if fields.get("paid"):
        fields["paid_at"] = utcnow()
    payment = create_document("payment", Payment(user_id=user_id, **fields))
    record_history(user_id, "payment", f"Added payment of {payment['amount']:.2f}",
                   {"payment_id": str(payment["_id"]), "client_id": payment["client_id"]})
    return {"success": True, "message": "Payment created successfully", "data": serialize_payment(payment)}


@payments_router.put("/{payment_id}")
def update_payment(payment_id: str, payload: PaymentIn, user_id: str = Depends(current_user_id)):
    changes = payload.model_dump(exclude_unset=True)
    if "client_id" in changes:
        if is_blank(changes["client_id"]):
            raise BadRequestException("Payment must belong to a client")
        changes["client_id"] = owned_reference("client", changes["client_id"], user_id, "Client")
    if "paid" in changes and changes["paid"] is None:
        del changes["paid"]
    if "paid" in changes:
        changes["paid_at"] = utcnow() if changes["paid"] else None

    payment = apply_update("payment", Payment, payment_id, user_id, changes, "Payment")
    return {"success": True, "message": "Payment updated successfully", "data": serialize_payment(payment)}


@payments_router.patch("/{payment_id}/paid")
def mark_payment_paid(payment_id: str, user_id: str = Depends(current_user_id)):
    existing = require_owned("payment", payment_id, user_id, "Payment")
    if existing.get("paid"):
        return {"success": True, "data": serialize_payment(existing)}
    payment = apply_update("payment", Payment, payment_id, user_id, {"paid": True, "paid_at": utcnow()}, "Payment")
    record_history(user_id, "payment", f"Marked payment of {payment['amount']:.2f} as paid",
                   {"payment_id": payment_id})
    return {"success": True, "data": serialize_payment(payment)}


@payments_router.delete("/{payment_id}")
def delete_payment(payment_id: str, user_id: str = Depends(current_user_id)):
    payment = delete_owned("payment", payment_id, user_id, "payment")
    if not payment:
        raise NotFoundException("Payment")
    record_history(user_id, "payment", f"Deleted payment of {payment['amount']:.2f}", {"payment_id": payment_id})
    return {"success": True, "message": "Payment deleted successfully", "data": {}}


media_router = APIRouter(prefix="/api/media", tags=["media"])


@media_router.get("")
def list_media(user_id: str = Depends(current_user_id)):
    return listing([serialize_document(doc) for doc in get_documents("media", {"user_id": user_id})])


@media_router.post("/upload", status_code=201)
@media_router.post("", status_code=201)
def upload_media(image: Optional[UploadFile] = File(None), user_id: str = Depends(current_user_id)):
    if image is None or not image.filename:
        raise BadRequestException("No file uploaded. Please provide an image file.")
    if image.content_type not in ALLOWED_MIME_TYPES:
        raise BadRequestException("Invalid file type. Only images (JPEG, PNG, GIF, WebP) are allowed.")

    content = image.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise BadRequestException(f"File size exceeds {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit.")

    result = media_storage.upload(content, media_storage.user_folder(user_id))
    media = create_document("media", Media(
        user_id=user_id,
        url=result.get("secure_url") or result.get("url", ""),
        public_id=result.get("public_id", ""),
        filename=image.filename,
        mime_type=image.content_type,
        size=len(content),
        width=result.get("width"),
        height=result.get("height"),
        format=result.get("format"),
    ))
    return {"success": True, "message": "Media uploaded successfully", "data": serialize_document(media)}


@media_router.get("/{media_id}")
def get_media(media_id: str, user_id: str = Depends(current_user_id)):
    return {"success": True, "data": serialize_document(require_owned("media", media_id, user_id, "Media"))}


@media_router.put("/{media_id}")
def rename_media(media_id: str, payload: MediaUpdate, user_id: str = Depends(current_user_id)):
    if is_blank(payload.filename):
        raise BadRequestException("Please provide a filename")
    media = apply_update("media", Media, media_id, user_id, {"filename": payload.filename}, "Media")
    return {"success": True, "message": "Media updated successfully", "data": serialize_document(media)}


@media_router.delete("/{media_id}")
def delete_media(media_id: str, user_id: str = Depends(current_user_id)):
    media = require_owned("media", media_id, user_id, "Media")
    try:
        media_storage.delete(media["public_id"])
    except (StorageException, ConfigurationException) as e:
        # the image may already be gone from the CDN
        logger.warning("Continuing media delete after CDN failure: %s", e.detail)
    delete_owned("media", media_id, user_id, "media")
    return {"success": True, "message": "Media deleted successfully", "data": {}}


ai_router = APIRouter(prefix="/api/ai", tags=["ai"])


def generate(feature: str, prompt: str, temperature: float, max_tokens: int) -> Any:
    try:
        return gemini_client.send_prompt(prompt, temperature=temperature, max_tokens=max_tokens,
                                         response_format="json")
    except GenerationException as e:
        raise GenerationException(f"Failed to generate {feature}", error=e.error or str(e.detail))


@ai_router.post("/ideas")
def generate_ideas(payload: IdeasRequest, user_id: str = Depends(current_user_id)):
    if is_blank(payload.prompt) or is_blank(payload.niche):
        raise BadRequestException("Please provide prompt and niche")
    count = ai_prompts.clamp_count(payload.count, 5, 20)

    data = generate("ideas", ai_prompts.ideas_prompt(payload.prompt, payload.niche, count), 0.8, 2000)
    ideas = ai_prompts.extract_ideas(data, count)

    record_history(user_id, "other", f"Generated {len(ideas)} content ideas for {payload.niche} niche",
                   {"prompt": payload.prompt, "niche": payload.niche, "count": len(ideas)})
    return {"success": True, "data": ideas, "count": len(ideas)}


@ai_router.post("/hooks")
def generate_hooks(payload: HooksRequest, user_id: str = Depends(current_user_id)):
    if is_blank(payload.topic):
        raise BadRequestException("Please provide topic")
    count = ai_prompts.clamp_count(payload.count, 5, 20)

    data = generate("hooks", ai_prompts.hooks_prompt(payload.topic, count), 0.9, 1500)
    hooks = ai_prompts.extract_strings(data, "hooks", count)

    record_history(user_id, "project", f"Generated {len(hooks)} hooks for topic: {payload.topic}",
                   {"topic": payload.topic, "count": len(hooks)})
    return {"success": True, "data": hooks, "count": len(hooks)}


@ai_router.post("/scripts")
def generate_script(payload: ScriptRequest, user_id: str = Depends(current_user_id)):
    if is_blank(payload.topic):
        raise BadRequestException("Please provide topic")
    length = payload.length if payload.length in ai_prompts.SCRIPT_LENGTHS else "medium"

    script = generate("script", ai_prompts.script_prompt(payload.topic, length), 0.7, 3000)

    record_history(user_id, "project", f"Generated script for topic: {payload.topic}",
                   {"topic": payload.topic, "length": length})
    return {"success": True, "data": script}


@ai_router.post("/captions")
def generate_captions(payload: CaptionsRequest, user_id: str = Depends(current_user_id)):
    if is_blank(payload.topic):
        raise BadRequestException("Please provide topic")
    count = ai_prompts.clamp_count(payload.count, 5, 20)
    tone = payload.tone or "engaging"

    data = generate("captions", ai_prompts.captions_prompt(payload.topic, tone, count), 0.8, 2000)
    captions = ai_prompts.extract_strings(data, "captions", count)

    record_history(user_id, "project", f"Generated {len(captions)} captions for topic: {payload.topic}",
                   {"topic": payload.topic, "tone": tone, "count": len(captions)})
    return {"success": True, "data": captions, "count": len(captions)}


@ai_router.post("/hashtags")
def generate_hashtags(payload: HashtagsRequest, user_id: str = Depends(current_user_id)):
    if is_blank(payload.niche):
        raise BadRequestException("Please provide niche")
    count = ai_prompts.clamp_count(payload.count, 10, 50)

    data = generate("hashtags", ai_prompts.hashtags_prompt(payload.niche, count), 0.7, 1000)
    hashtags = ai_prompts.extract_hashtags(data, count)

    record_history(user_id, "project", f"Generated {len(hashtags)} hashtags for {payload.niche} niche",
                   {"niche": payload.niche, "count": len(hashtags)})
    return {"success": True, "data": hashtags, "count": len(hashtags)}


@ai_router.post("/improve")
def improve_script(payload: ImproveRequest, user_id: str = Depends(current_user_id)):
    if not isinstance(payload.script, str) or not payload.script.strip():
        raise BadRequestException("Please provide a script to improve")

    improved = generate("improved script", ai_prompts.improve_prompt(payload.script), 0.7, 4000)

    record_history(user_id, "project", "Improved script using AI", {
        "original_length": len(payload.script),
        "improved_length": ai_prompts.improved_length(improved),
    })
    return {"success": True, "data": improved}


history_router = APIRouter(prefix="/api/history", tags=["history"])


@history_router.get("")
def list_history(history_type: Optional[str] = Query(None, alias="type"),
                 limit: Optional[int] = Query(None, ge=1, le=200),
                 user_id: str = Depends(current_user_id)):
    query: Dict[str, Any] = {"user_id": user_id}
    if history_type:
        if history_type not in HISTORY_TYPES:
            raise BadRequestException(f"Type must be one of: {', '.join(HISTORY_TYPES)}")
        query["type"] = history_type
    entries = get_documents("history", query, limit=limit or settings.HISTORY_LIMIT)
    return listing([serialize_document(doc) for doc in entries])


analytics_router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def month_bounds(now: datetime):
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        return start, datetime(now.year + 1, 1, 1)
    return start, datetime(now.year, now.month + 1, 1)


@analytics_router.get("")
def analytics(user_id: str = Depends(current_user_id)):
    now = utcnow()
    start_of_month, start_of_next_month = month_bounds(now)

    unpaid = get_documents("payment", {"user_id": user_id, "paid": False})
    overdue = [doc for doc in unpaid if is_overdue(False, doc.get("due_date"), now)]

    return {
        "success": True,
        "clients_count": count_documents("client", {"user_id": user_id}),
        "projects_count": count_documents("project", {"user_id": user_id}),
        "tasks_due_this_month": count_documents("task", {
            "user_id": user_id,
            "completed": False,
            "due_date": {"$gte": start_of_month, "$lt": start_of_next_month},
        }),
        "payments_pending": len(unpaid),
        "payments_overdue": len(overdue),
        "pending_amount": sum(float(doc.get("amount", 0)) for doc in unpaid),
        "projects_by_status": {
            status: count_documents("project", {"user_id": user_id, "status": status})
            for status in PROJECT_STATUSES
        },
    }


app.include_router(auth_router)
app.include_router(clients_router)
app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(payments_router)
app.include_router(media_router)
app.include_router(ai_router)
app.include_router(history_router)
app.include_router(analytics_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.PORT)
