"""
Database Schemas for XORA, the cuisiniste back office

Each Pydantic model maps to a MongoDB collection or to the body of a form
that writes one. Every tenant record carries ``company_id``.

Relations (logical, never enforced):
- company → users (collaborators) → sessions
- company → clients → projects → tasks / appointments
- clients → client_documents (blob metadata)
- company → articles (catalog), invitations, kpis, status_overview

These schemas are used for validation only. MongoDB remains schemaless, but we
use them to ensure data integrity at the API boundary.
"""
from __future__ import annotations

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, Literal, Any, Dict

# ---------- Core ----------

class Person(BaseModel):
    """Denormalised snapshot of a collaborator stored on other records."""
    uid: Optional[str] = None
    name: str
    avatar: Optional[str] = None

ProfileField = Literal[
    "civility", "first_name", "last_name", "portable", "fixed",
    "contract_type", "job_title", "has_phone", "has_car", "has_laptop",
    "agenda_color", "is_subscription_active", "avatar", "company_name",
]

class ProfileUpdate(BaseModel):
    field: ProfileField
    value: Any = None

# ---------- CRM: clients ----------

ClientStatus = Literal["Leads", "Prospect", "Client"]
DirectoryTab = Literal["Tous", "Leads", "Prospects", "Clients"]
Civility = Literal["Mme", "M.", "Mr"]

class ClientCreate(BaseModel):
    civility: Civility = "Mme"
    last_name: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    fixed: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    complement: Optional[str] = None
    category: str = ""
    origin: str = ""
    sub_origin: str = ""
    referent: Optional[str] = None
    rgpd: bool = False

class ClientUpdate(BaseModel):
    """Field-level edits from the client sheet.

    Top-level fields are set directly; ``details`` keys are merged one by one
    so concurrent screens editing different keys do not overwrite each other.
    """
    name: Optional[str] = None
    status: Optional[ClientStatus] = None
    origin: Optional[str] = None
    location: Optional[str] = None
    details: Dict[str, Any] = {}

class Property(BaseModel):
    id: Optional[str] = None
    number: Optional[int] = None
    address: str = ""
    complement: Optional[str] = None
    type: Optional[str] = None
    usage: Optional[str] = None
    work_nature: Optional[str] = None
    is_main: bool = False

ContactKind = Literal["external", "directory"]

class ExternalContact(BaseModel):
    id: Optional[str] = None
    civility: Civility = "Mme"
    last_name: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    fixed: Optional[str] = None
    type: str = "Conjoint / Conjointe"

# ---------- Projects ----------

class ProjectCreate(BaseModel):
    categorie: str = Field(..., min_length=1)
    origine: str = Field(..., min_length=1)
    sous_origine: str = ""
    project_name: str = "Pose d'une cuisine"
    metier: str = "Cuisiniste"
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    agenceur: Optional[Person] = None
    adresse_chantier: Optional[str] = None

class ProjectUpdate(BaseModel):
    project_name: Optional[str] = None
    status: Optional[str] = None
    status_color: Optional[str] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    metier: Optional[str] = None
    agenceur: Optional[Person] = None

class FieldUpdate(BaseModel):
    """A single dotted-path write such as ``kitchen.furniture.volume_actuel``."""
    field: str = Field(..., pattern=r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
    value: Any = None

ArticleMode = Literal["Electromenager", "Sanitaire"]

# ---------- Tasks ----------

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskStatusType = Literal["progress", "toggle"]
TaskStatusLabel = Literal["A faire", "En attente", "Urgent", "Prioritaire", "Dossier technique", "Appel à passer"]
TaskTab = Literal["en-cours", "termine"]
TagColor = Literal["blue", "gray", "purple", "pink"]

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    is_memo: bool = False
    status_label: TaskStatusLabel = "A faire"
    end_date: Optional[str] = Field(None, description="ISO date, YYYY-MM-DD")
    note: str = ""
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    collaborator: Optional[Person] = None

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    tag: Optional[str] = None
    tag_color: Optional[TagColor] = None
    status_label: Optional[TaskStatusLabel] = None
    date: Optional[str] = Field(None, description="ISO date, YYYY-MM-DD")
    progress: Optional[int] = Field(None, ge=0, le=100)
    status_type: Optional[TaskStatusType] = None
    is_late: Optional[bool] = None
    note: Optional[str] = None
    collaborator: Optional[Person] = None

class TaskStatusUpdate(BaseModel):
    status: TaskStatus

# ---------- Appointments ----------

AppointmentType = Literal["R1", "R2", "Métré", "Pose", "SAV", "Autre"]
AppointmentLocation = Literal["Showroom", "Domicile", "Visio", "Autre"]

class AppointmentCreate(BaseModel):
    client_id: str
    client_name: str
    title: str = Field(..., min_length=1)
    type: AppointmentType = "R1"
    date: str = Field(..., description="ISO date, YYYY-MM-DD")
    start_time: str = Field("10:00", pattern=r"^\d{1,2}:\d{2}$")
    end_time: str = Field("12:00", pattern=r"^\d{1,2}:\d{2}$")
    location: AppointmentLocation = "Showroom"
    project_id: Optional[str] = None
    collaborator: Optional[Person] = None

# ---------- Catalog ----------

class Article(BaseModel):
    metier: str = "Cuisine"
    rubrique: str = "Général"
    famille: str = "Non classé"
    collection: str = ""
    descriptif: str = ""
    prix_mini_ttc: float = 0.0
    prix_maxi_ttc: float = 0.0

# ---------- Team ----------

class InvitationCreate(BaseModel):
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    role: str = "Agenceur"

# ---------- Auth ----------

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    invite_id: Optional[str] = Field(None, description="Company id carried by an invitation link")
    company_name: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
