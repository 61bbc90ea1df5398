import os
import re
import time
import hashlib
import logging
import secrets
from datetime import date, datetime, timezone
from typing import List, Optional, Dict, Any
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Depends, UploadFile, File, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, EmailStr
from bson import ObjectId
from bson.errors import InvalidId

import agenda
import catalog
import database
import geocoding
import invitations
import listing
import origins
import seed
import storage
from database import create_document, get_documents, serialize, dotted
from schemas import (
    RegisterRequest, LoginRequest, ProfileUpdate,
    ClientCreate, ClientUpdate, Property, ExternalContact, ContactKind, DirectoryTab,
    ProjectCreate, ProjectUpdate, FieldUpdate, ArticleMode,
    TaskCreate, TaskUpdate, TaskStatusUpdate, TaskTab,
    AppointmentCreate, Article as ArticleSchema, InvitationCreate,
)

logger = logging.getLogger(__name__)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# FastAPI app
app = FastAPI(title="XORA API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- Utilities ----------

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def now() -> datetime:
    return datetime.now(timezone.utc)


class AuthUser(BaseModel):
    uid: str
    name: str
    email: EmailStr
    role: str
    company_id: str
    company_name: Optional[str] = None
    avatar: Optional[str] = None

    def snapshot(self) -> Dict[str, Any]:
        return {"uid": self.uid, "name": self.name, "avatar": self.avatar}


def get_collection(name: str):
    if database.db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return database.db[name]


def objid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def get_owned(collection: str, doc_id: str, user: "AuthUser", label: str) -> Dict[str, Any]:
    """Fetch a record of the caller's company; other tenants' records are 404."""
    d = get_collection(collection).find_one({"_id": objid(doc_id), "company_id": user.company_id})
    if not d:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return d


def check_origin(category: str, origin: str, sub_origin: str) -> None:
    try:
        origins.validate_origin(category, origin, sub_origin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def fr_from_iso(value: Optional[str]) -> str:
    try:
        return agenda.iso_to_fr(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


# ---------- Auth ----------

class TokenResponse(BaseModel):
    token: str
    user: AuthUser


def to_auth_user(user_doc: Dict[str, Any]) -> AuthUser:
    return AuthUser(
        uid=str(user_doc["_id"]),
        name=user_doc["name"],
        email=user_doc["email"],
        role=user_doc.get("role", "Agenceur"),
        company_id=user_doc["company_id"],
        company_name=user_doc.get("company_name"),
        avatar=user_doc.get("avatar"),
    )


def get_current_user(token: str = Query(None, alias="token")) -> AuthUser:
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")
    session = get_collection("session").find_one({"token": token})
    if not session:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_doc = get_collection("user").find_one({"_id": session["user_id"]})
    if not user_doc:
        raise HTTPException(status_code=401, detail="Invalid session user")
    return to_auth_user(user_doc)


def open_session(user_id: ObjectId) -> str:
    token = secrets.token_urlsafe(24)
    get_collection("session").insert_one({"user_id": user_id, "token": token, "created_at": now()})
    return token


@app.post("/auth/register", response_model=TokenResponse)
def register(req: RegisterRequest):
    users = get_collection("user")
    email = req.email.lower()
    if users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email already registered")

    invite = None
    if req.invite_id:
        invite = get_collection("invitations").find_one({"company_id": req.invite_id, "to": email, "status": "pending"})
        if not invite:
            raise HTTPException(status_code=400, detail="No pending invitation for this email")

    user = {
        "name": req.name,
        "email": email,
        "role": invite["role"] if invite else "Agenceur",
        "company_id": invite["company_id"] if invite else str(ObjectId()),
        "company_name": invite["company_name"] if invite else req.company_name,
        "first_name": invite.get("first_name", "") if invite else "",
        "last_name": invite.get("last_name", "") if invite else "",
        "hashed_password": hash_password(req.password),
        "is_subscription_active": True,
        "created_at": now(),
    }
    user_id = users.insert_one(user).inserted_id
    user["avatar"] = f"https://i.pravatar.cc/150?u={user_id}"
    users.update_one({"_id": user_id}, {"$set": {"avatar": user["avatar"]}})
    if invite:
        get_collection("invitations").update_one(
            {"_id": invite["_id"]}, {"$set": {"status": "accepted", "accepted_at": now()}}
        )
        logger.info("Invitation %s accepted by %s", invite["_id"], email)

    token = open_session(user_id)
    return TokenResponse(token=token, user=to_auth_user({"_id": user_id, **user}))


@app.post("/auth/login", response_model=TokenResponse)
def login(req: LoginRequest):
    user = get_collection("user").find_one({"email": req.email.lower()})
    if not user or user.get("hashed_password") != hash_password(req.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = open_session(user["_id"])
    return TokenResponse(token=token, user=to_auth_user(user))


@app.post("/auth/logout")
def logout(token: str = Query(..., alias="token")):
    get_collection("session").delete_one({"token": token})
    return {"ok": True}


@app.get("/auth/me", response_model=AuthUser)
def me(user: AuthUser = Depends(get_current_user)):
    return user


# ---------- Team & profile ----------

PROFILE_PUBLIC_FIELDS = {"hashed_password": 0}
TEXT_PROFILE_FIELDS = ("first_name", "last_name", "avatar")


@app.get("/users")
def list_users(user: AuthUser = Depends(get_current_user)):
    docs = get_collection("user").find({"company_id": user.company_id}, PROFILE_PUBLIC_FIELDS)
    res = [serialize(d) for d in docs]
    if not any(d["_id"] == user.uid for d in res):
        res.insert(0, {"_id": user.uid, **user.snapshot()})
    return res


@app.get("/users/me")
def get_profile(user: AuthUser = Depends(get_current_user)):
    return serialize(get_collection("user").find_one({"_id": objid(user.uid)}, PROFILE_PUBLIC_FIELDS))


@app.patch("/users/me")
def update_profile(update: ProfileUpdate, user: AuthUser = Depends(get_current_user)):
    users = get_collection("user")
    current = users.find_one({"_id": objid(user.uid)})
    value = update.value
    if update.field in TEXT_PROFILE_FIELDS:
        if value is None:
            value = ""
        elif not isinstance(value, str):
            raise HTTPException(status_code=400, detail=f"{update.field} must be a string")
        value = value.strip()
    if update.field == "last_name":
        value = value.upper()

    changes: Dict[str, Any] = {update.field: value}
    renamed = update.field in ("first_name", "last_name")
    if renamed:
        first = value if update.field == "first_name" else current.get("first_name") or ""
        last = value if update.field == "last_name" else current.get("last_name") or ""
        changes["name"] = f"{first} {last}".strip() or current["name"]
    users.update_one({"_id": current["_id"]}, {"$set": changes})

    synced = {"clients": 0, "projects": 0}
    if renamed or update.field == "avatar":
        name = changes.get("name", current["name"])
        avatar = value if update.field == "avatar" else current.get("avatar")
        synced = sync_profile_snapshots(user.uid, name, avatar)
    return {"profile": serialize(users.find_one({"_id": current["_id"]}, PROFILE_PUBLIC_FIELDS)), "synced": synced}


def sync_profile_snapshots(uid: str, name: str, avatar: Optional[str]) -> Dict[str, int]:
    """Rewrite the name/avatar copies held on clients and projects of this user."""
    clients = get_collection("clients").update_many(
        {"added_by.uid": uid}, {"$set": {"added_by.name": name, "added_by.avatar": avatar}}
    )
    projects = get_collection("projects").update_many(
        {"agenceur.uid": uid}, {"$set": {"agenceur.name": name, "agenceur.avatar": avatar}}
    )
    logger.info("Profile %s synced to %d clients, %d projects", uid, clients.modified_count, projects.modified_count)
    return {"clients": clients.modified_count, "projects": projects.modified_count}


# ---------- Origins ----------

@app.get("/origins")
def list_categories():
    return origins.categories()


@app.get("/origins/{category}")
def list_origins(category: str):
    return origins.origins_for(category)


@app.get("/origins/{category}/{origin}")
def list_sub_origins(category: str, origin: str):
    return origins.sub_origins_for(category, origin)


@app.get("/geocode")
def geocode(q: str = ""):
    return geocoding.search_addresses(q)


# ---------- CRM: Clients ----------

def client_addresses(client: Dict[str, Any]) -> List[str]:
    details = client.get("details") or {}
    addresses: List[str] = []
    if details.get("address"):
        addresses.append(details["address"])
    for p in details.get("properties") or []:
        if p.get("address") and p["address"] not in addresses:
            addresses.append(p["address"])
    return addresses


@app.post("/crm/clients")
def create_client(form: ClientCreate, user: AuthUser = Depends(get_current_user)):
    check_origin(form.category, form.origin, form.sub_origin)
    details = form.model_dump()
    details["referent"] = form.referent or user.name
    details["created_at"] = now().isoformat()
    data = {
        "name": f"{form.first_name} {form.last_name}".upper().strip(),
        "added_by": user.snapshot(),
        "origin": form.origin,
        "location": form.city or "Non renseignée",
        "status": "Leads",
        "date_added": agenda.fr_date(date.today()),
        "company_id": user.company_id,
        "details": details,
        "project_count": 0,
    }
    _id = create_document(get_collection("clients"), data)
    logger.info("Client %s created by %s", _id, user.uid)
    return serialize({"_id": _id, **data})


@app.get("/crm/clients")
def list_clients(tab: DirectoryTab = "Tous", q: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    clients = get_documents(get_collection("clients"), {"company_id": user.company_id})
    return {
        "tabs": listing.tab_counts(clients),
        "items": listing.filter_clients(clients, tab=tab, q=q or ""),
    }


@app.get("/crm/clients/search")
def search_clients(q: str = "", user: AuthUser = Depends(get_current_user)):
    clients = get_documents(get_collection("clients"), {"company_id": user.company_id})
    return listing.search_clients(clients, q)


@app.get("/crm/clients/{client_id}")
def get_client(client_id: str, user: AuthUser = Depends(get_current_user)):
    return serialize(get_owned("clients", client_id, user, "Client"))


@app.patch("/crm/clients/{client_id}")
def update_client(client_id: str, update: ClientUpdate, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    changes = update.model_dump(exclude_unset=True, exclude={"details"})
    for key in update.details:
        if not _IDENTIFIER.match(key):
            raise HTTPException(status_code=400, detail=f"Invalid field: {key}")
    changes.update(dotted("details", update.details))
    if not changes:
        return serialize(client)
    changes["updated_at"] = now()
    get_collection("clients").update_one({"_id": client["_id"]}, {"$set": changes})
    return serialize(get_collection("clients").find_one({"_id": client["_id"]}))


@app.delete("/crm/clients/{client_id}")
def delete_client(client_id: str, user: AuthUser = Depends(get_current_user)):
    # Projects, tasks, appointments and documents of the client are left in place.
    get_collection("clients").delete_one({"_id": objid(client_id), "company_id": user.company_id})
    return {"ok": True}


@app.get("/crm/clients/{client_id}/summary")
def client_summary(client_id: str, user: AuthUser = Depends(get_current_user)):
    get_owned("clients", client_id, user, "Client")
    scope = {"client_id": client_id, "company_id": user.company_id}
    return {
        "projects": get_collection("projects").count_documents(scope),
        "tasks": get_collection("tasks").count_documents(scope),
        "appointments": get_collection("appointments").count_documents(scope),
    }


@app.get("/crm/clients/{client_id}/addresses")
def list_client_addresses(client_id: str, user: AuthUser = Depends(get_current_user)):
    return client_addresses(get_owned("clients", client_id, user, "Client"))


# ---------- CRM: Properties ----------

def current_properties(client: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Stored properties, or the main address as property #1 when none exist."""
    details = client.get("details") or {}
    props = details.get("properties") or []
    if props:
        return list(props)
    return [{"id": "main", "number": 1, "address": details.get("address") or "Adresse principale", "is_main": True}]


def save_properties(client: Dict[str, Any], props: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    get_collection("clients").update_one({"_id": client["_id"]}, {"$set": {"details.properties": props}})
    return props


@app.get("/crm/clients/{client_id}/properties")
def list_properties(client_id: str, user: AuthUser = Depends(get_current_user)):
    return current_properties(get_owned("clients", client_id, user, "Client"))


@app.post("/crm/clients/{client_id}/properties")
def add_property(client_id: str, prop: Property, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    props = current_properties(client)
    new_prop = prop.model_dump()
    new_prop.update({"id": str(ObjectId()), "number": len(props) + 1, "is_main": False})
    return save_properties(client, props + [new_prop])


@app.put("/crm/clients/{client_id}/properties/{prop_id}")
def update_property(client_id: str, prop_id: str, prop: Property, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    props = current_properties(client)
    for i, p in enumerate(props):
        if p.get("id") == prop_id:
            props[i] = {**p, **prop.model_dump(exclude_unset=True, exclude={"id", "number"})}
            return save_properties(client, props)
    raise HTTPException(status_code=404, detail="Property not found")


@app.delete("/crm/clients/{client_id}/properties/{prop_id}")
def delete_property(client_id: str, prop_id: str, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    props = current_properties(client)
    remaining = [p for p in props if p.get("id") != prop_id]
    if len(remaining) == len(props):
        raise HTTPException(status_code=404, detail="Property not found")
    return save_properties(client, remaining)


# ---------- CRM: Contacts linked to a client ----------

CONTACT_FIELDS = {"external": "details.external_contacts", "directory": "details.directory_contacts"}


@app.post("/crm/clients/{client_id}/contacts/{kind}")
def add_client_contact(client_id: str, kind: ContactKind, contact: ExternalContact, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    data = contact.model_dump()
    data["id"] = str(ObjectId())
    get_collection("clients").update_one({"_id": client["_id"]}, {"$push": {CONTACT_FIELDS[kind]: data}})
    return data


@app.delete("/crm/clients/{client_id}/contacts/{kind}/{contact_id}")
def remove_client_contact(client_id: str, kind: ContactKind, contact_id: str, user: AuthUser = Depends(get_current_user)):
    client = get_owned("clients", client_id, user, "Client")
    res = get_collection("clients").update_one({"_id": client["_id"]}, {"$pull": {CONTACT_FIELDS[kind]: {"id": contact_id}}})
    if res.modified_count == 0:
        raise HTTPException(status_code=404, detail="Contact not found")
    return {"ok": True}


# ---------- CRM: Documents ----------

_blob_store = None


def get_blob_store():
    global _blob_store
    if _blob_store is None:
        _blob_store = storage.create_store(database.db)
    if _blob_store is None:
        raise HTTPException(status_code=500, detail="Storage not configured")
    return _blob_store


@app.post("/crm/clients/{client_id}/documents")
async def upload_documents(client_id: str, files: List[UploadFile] = File(...), user: AuthUser = Depends(get_current_user), store=Depends(get_blob_store)):
    get_owned("clients", client_id, user, "Client")
    created = []
    for f in files:
        content = await f.read()
        unique_id = f"{int(time.time() * 1000)}{secrets.token_hex(3)}"
        storage_path = f"clients/{client_id}/documents/{unique_id}_{f.filename}"
        store.put(storage_path, content, f.content_type)
        meta = {
            "client_id": client_id,
            "company_id": user.company_id,
            "name": f.filename,
            "size": len(content),
            "type": f.content_type or "application/octet-stream",
            "storage_path": storage_path,
            "uploaded_at": now(),
            "uploaded_by": user.name,
        }
        _id = get_collection("client_documents").insert_one(meta).inserted_id
        created.append(serialize({"_id": _id, **meta}))
    return created


@app.get("/crm/clients/{client_id}/documents")
def list_documents(client_id: str, user: AuthUser = Depends(get_current_user)):
    docs = get_documents(get_collection("client_documents"), {"client_id": client_id, "company_id": user.company_id})
    for d in docs:
        d["size_label"] = storage.format_size(d.get("size") or 0)
    return listing.newest_first(docs, "uploaded_at")


@app.get("/documents/{document_id}/download")
def download_document(document_id: str, user: AuthUser = Depends(get_current_user), store=Depends(get_blob_store)):
    meta = get_owned("client_documents", document_id, user, "Document")
    try:
        content = store.get(meta["storage_path"])
    except storage.BlobNotFound:
        raise HTTPException(status_code=404, detail="File missing from storage")
    return Response(
        content=content,
        media_type=meta.get("type") or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(meta["name"])},
    )


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("\\", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@app.delete("/documents/{document_id}")
def delete_document(document_id: str, user: AuthUser = Depends(get_current_user), store=Depends(get_blob_store)):
    meta = get_owned("client_documents", document_id, user, "Document")
    blob_deleted = False
    if meta.get("storage_path"):
        # A blob that cannot be removed must not keep the metadata alive.
        try:
            store.delete(meta["storage_path"])
            blob_deleted = True
        except storage.BlobNotFound:
            logger.warning("Blob %s already gone, removing metadata", meta["storage_path"])
        except Exception:
            logger.exception("Could not delete blob %s, removing metadata anyway", meta["storage_path"])
    get_collection("client_documents").delete_one({"_id": meta["_id"]})
    return {"ok": True, "blob_deleted": blob_deleted}


# ---------- Projects ----------

STATUS_INITIAL = "Études à réaliser"
STATUS_INITIAL_COLOR = "bg-[#FAE8FF] text-[#D946EF]"
KITCHEN_LISTS = {"Electromenager": "electros", "Sanitaire": "sanitaires"}


@app.post("/projects")
def create_project(form: ProjectCreate, user: AuthUser = Depends(get_current_user)):
    check_origin(form.categorie, form.origine, form.sous_origine)
    client = get_owned("clients", form.client_id, user, "Client") if form.client_id else None
    client_name = form.client_name or (client or {}).get("name") or "Client Inconnu"
    addresses = client_addresses(client) if client else []
    agenceur = form.agenceur.model_dump() if form.agenceur else user.snapshot()
    data = {
        "project_name": form.project_name,
        "client_name": client_name,
        "client_id": form.client_id,
        "company_id": user.company_id,
        "metier": form.metier,
        "categorie": form.categorie,
        "origine": form.origine,
        "sous_origine": form.sous_origine,
        "added_date": agenda.fr_date(date.today()),
        "progress": 2,
        "status": STATUS_INITIAL,
        "status_color": STATUS_INITIAL_COLOR,
        "agenceur": agenceur,
        "details": {"adresse_chantier": form.adresse_chantier or (addresses[0] if addresses else "")},
    }
    _id = create_document(get_collection("projects"), data)
    if client:
        get_collection("clients").update_one({"_id": client["_id"]}, {"$inc": {"project_count": 1}})
    return serialize({"_id": _id, **data})


@app.get("/projects")
def list_projects(q: Optional[str] = None, client_id: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    query: Dict[str, Any] = {"company_id": user.company_id}
    if client_id:
        query["client_id"] = client_id
    return listing.filter_projects(get_documents(get_collection("projects"), query), q or "")


@app.get("/projects/{project_id}")
def get_project(project_id: str, user: AuthUser = Depends(get_current_user)):
    project = serialize(get_owned("projects", project_id, user, "Project"))
    project["task_count"] = get_collection("tasks").count_documents({"project_id": project_id, "company_id": user.company_id})
    return project


@app.patch("/projects/{project_id}")
def update_project(project_id: str, update: ProjectUpdate, user: AuthUser = Depends(get_current_user)):
    project = get_owned("projects", project_id, user, "Project")
    changes = update.model_dump(exclude_unset=True)
    if changes:
        changes["updated_at"] = now()
        get_collection("projects").update_one({"_id": project["_id"]}, {"$set": changes})
    return serialize(get_collection("projects").find_one({"_id": project["_id"]}))


@app.patch("/projects/{project_id}/details")
def update_project_details(project_id: str, update: FieldUpdate, user: AuthUser = Depends(get_current_user)):
    project = get_owned("projects", project_id, user, "Project")
    get_collection("projects").update_one({"_id": project["_id"]}, {"$set": {f"details.{update.field}": update.value, "updated_at": now()}})
    return {"ok": True, "field": update.field, "value": update.value}


@app.delete("/projects/{project_id}")
def delete_project(project_id: str, user: AuthUser = Depends(get_current_user)):
    project = get_owned("projects", project_id, user, "Project")
    get_collection("projects").delete_one({"_id": project["_id"]})
    if project.get("client_id"):
        get_collection("clients").update_one(
            {"_id": objid(project["client_id"]), "project_count": {"$gt": 0}}, {"$inc": {"project_count": -1}}
        )
    return {"ok": True}


@app.get("/projects/{project_id}/articles")
def list_project_articles(project_id: str, user: AuthUser = Depends(get_current_user)):
    project = serialize(get_owned("projects", project_id, user, "Project"))
    kitchen = (project.get("details") or {}).get("kitchen") or {}
    res: Dict[str, Any] = {}
    everything = []
    for key in KITCHEN_LISTS.values():
        items = kitchen.get(key) or []
        everything.extend(items)
        res[key] = {"items": items, "totals": catalog.price_totals(items)}
    res["totals"] = catalog.price_totals(everything)
    return res


@app.post("/projects/{project_id}/articles/{mode}/{article_id}")
def add_project_article(project_id: str, mode: ArticleMode, article_id: str, user: AuthUser = Depends(get_current_user)):
    project = get_owned("projects", project_id, user, "Project")
    article = serialize(get_owned("articles", article_id, user, "Article"))
    field = f"details.kitchen.{KITCHEN_LISTS[mode]}"
    get_collection("projects").update_one({"_id": project["_id"]}, {"$addToSet": {field: article}})
    return article


@app.delete("/projects/{project_id}/articles/{mode}/{article_id}")
def remove_project_article(project_id: str, mode: ArticleMode, article_id: str, user: AuthUser = Depends(get_current_user)):
    project = get_owned("projects", project_id, user, "Project")
    field = f"details.kitchen.{KITCHEN_LISTS[mode]}"
    res = get_collection("projects").update_one({"_id": project["_id"]}, {"$pull": {field: {"_id": article_id}}})
    if res.modified_count == 0:
        raise HTTPException(status_code=404, detail="Article not in project")
    return {"ok": True}


# ---------- Tasks ----------

def tag_color_for(status_label: str) -> str:
    return "purple" if status_label == "Prioritaire" else "gray"


@app.post("/tasks")
def create_task(form: TaskCreate, user: AuthUser = Depends(get_current_user)):
    project_name = ""
    if form.project_id:
        project_name = get_owned("projects", form.project_id, user, "Project").get("project_name", "")
    if form.client_id:
        get_owned("clients", form.client_id, user, "Client")
    data = {
        "title": form.title,
        "subtitle": project_name,
        "type": "Mémo" if form.is_memo else "Tâche manuelle",
        "tag": "",
        "status_label": form.status_label,
        "tag_color": tag_color_for(form.status_label),
        "date": fr_from_iso(form.end_date),
        "status": "pending",
        "status_type": "toggle",
        "progress": 0,
        "is_late": False,
        "company_id": user.company_id,
        "collaborator": form.collaborator.model_dump() if form.collaborator else user.snapshot(),
        "has_note": bool(form.note),
        "note": form.note,
        "client_id": form.client_id,
        "project_id": form.project_id,
    }
    _id = create_document(get_collection("tasks"), data)
    return serialize({"_id": _id, **data})


@app.get("/tasks")
def list_tasks(
    tab: Optional[TaskTab] = None,
    q: Optional[str] = None,
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
    user: AuthUser = Depends(get_current_user),
):
    query: Dict[str, Any] = {"company_id": user.company_id}
    if client_id:
        query["client_id"] = client_id
    if project_id:
        query["project_id"] = project_id
    return listing.filter_tasks(get_documents(get_collection("tasks"), query), tab=tab, q=q or "")


@app.put("/tasks/{task_id}")
def update_task(task_id: str, update: TaskUpdate, user: AuthUser = Depends(get_current_user)):
    task = get_owned("tasks", task_id, user, "Task")
    changes = update.model_dump(exclude_unset=True)
    if "status_label" in changes and "tag_color" not in changes:
        changes["tag_color"] = tag_color_for(changes["status_label"])
    if "note" in changes:
        changes["has_note"] = bool(changes["note"])
    if "date" in changes:
        changes["date"] = fr_from_iso(changes["date"])
    if changes:
        get_collection("tasks").update_one({"_id": task["_id"]}, {"$set": changes, "$currentDate": {"updated_at": True}})
    return serialize(get_collection("tasks").find_one({"_id": task["_id"]}))


@app.patch("/tasks/{task_id}/status")
def update_task_status(task_id: str, update: TaskStatusUpdate, user: AuthUser = Depends(get_current_user)):
    res = get_collection("tasks").update_one(
        {"_id": objid(task_id), "company_id": user.company_id}, {"$set": {"status": update.status}}
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"_id": task_id, "status": update.status}


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str, user: AuthUser = Depends(get_current_user)):
    get_collection("tasks").delete_one({"_id": objid(task_id), "company_id": user.company_id})
    return {"ok": True}


# ---------- Appointments & agenda ----------

@app.post("/appointments")
def create_appointment(form: AppointmentCreate, user: AuthUser = Depends(get_current_user)):
    get_owned("clients", form.client_id, user, "Client")
    if agenda.position(form.start_time, form.end_time)["height"] <= 0:
        raise HTTPException(status_code=400, detail="End time must be after start time")
    project_name = None
    if form.project_id:
        project_name = get_owned("projects", form.project_id, user, "Project").get("project_name")
    data = {
        "client_id": form.client_id,
        "client_name": form.client_name,
        "project_id": form.project_id or None,
        "project_name": project_name,
        "title": form.title,
        "type": form.type,
        "date": fr_from_iso(form.date),
        "start_time": form.start_time,
        "end_time": form.end_time,
        "location": form.location,
        "status": "confirmé",
        "collaborator": form.collaborator.model_dump() if form.collaborator else user.snapshot(),
        "company_id": user.company_id,
    }
    _id = create_document(get_collection("appointments"), data)
    return serialize({"_id": _id, **data})


@app.get("/appointments")
def list_appointments(client_id: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    query: Dict[str, Any] = {"company_id": user.company_id}
    if client_id:
        query["client_id"] = client_id
    return get_documents(get_collection("appointments"), query)


@app.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: str, user: AuthUser = Depends(get_current_user)):
    get_collection("appointments").delete_one({"_id": objid(appointment_id), "company_id": user.company_id})
    return {"ok": True}


def agenda_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return agenda.parse_iso_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


@app.get("/agenda/week")
def agenda_week(date: Optional[str] = None, q: Optional[str] = None, collaborator: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    items = get_documents(get_collection("appointments"), {"company_id": user.company_id})
    return agenda.week_view(agenda_date(date), agenda.filter_appointments(items, q or "", collaborator or ""))


@app.get("/agenda/day")
def agenda_day(date: Optional[str] = None, q: Optional[str] = None, collaborator: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    items = get_documents(get_collection("appointments"), {"company_id": user.company_id})
    return agenda.day_view(agenda_date(date), agenda.filter_appointments(items, q or "", collaborator or ""))


# ---------- Articles (catalog) ----------

@app.post("/articles")
def create_article(article: ArticleSchema, user: AuthUser = Depends(get_current_user)):
    data = article.model_dump()
    data.update({"company_id": user.company_id, "created_by": user.name})
    _id = create_document(get_collection("articles"), data)
    return serialize({"_id": _id, **data})


@app.get("/articles")
def list_articles(q: Optional[str] = None, rubrique: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    query: Dict[str, Any] = {"company_id": user.company_id}
    fields = ("famille", "rubrique", "descriptif")
    if rubrique:
        query["rubrique"] = rubrique
        fields = ("famille", "descriptif", "collection")
    docs = listing.newest_first(get_documents(get_collection("articles"), query), "created_at")
    return listing.filter_articles(docs, q or "", fields)


@app.post("/articles/import")
async def import_articles(file: UploadFile = File(...), user: AuthUser = Depends(get_current_user)):
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("cp1252", errors="replace")
    rows = catalog.parse_catalog(text)
    if rows:
        stamp = now()
        for r in rows:
            r.update({"company_id": user.company_id, "created_by": user.name, "created_at": stamp})
        get_collection("articles").insert_many(rows)
    logger.info("Imported %d articles for company %s", len(rows), user.company_id)
    return {"inserted": len(rows)}


@app.get("/articles/export")
def export_articles(user: AuthUser = Depends(get_current_user)):
    docs = get_collection("articles").find({"company_id": user.company_id})
    output = catalog.export_catalog(docs)
    return StreamingResponse(iter([output]), media_type="text/csv", headers={"Content-Disposition": "attachment; filename=articles.csv"})


@app.put("/articles/{article_id}")
def update_article(article_id: str, article: ArticleSchema, user: AuthUser = Depends(get_current_user)):
    res = get_collection("articles").update_one(
        {"_id": objid(article_id), "company_id": user.company_id}, {"$set": article.model_dump()}
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Article not found")
    return {"_id": article_id, **article.model_dump()}


@app.delete("/articles/{article_id}")
def delete_article(article_id: str, user: AuthUser = Depends(get_current_user)):
    get_collection("articles").delete_one({"_id": objid(article_id), "company_id": user.company_id})
    return {"ok": True}


# ---------- Invitations ----------

@app.post("/invitations")
def invite_collaborator(form: InvitationCreate, user: AuthUser = Depends(get_current_user)):
    inviter = {"_id": user.uid, "name": user.name, "company_id": user.company_id, "company_name": user.company_name}
    data = invitations.build_invitation(form.email, form.first_name, form.last_name, form.role, inviter)
    data["created_at"] = now()
    _id = get_collection("invitations").insert_one(data).inserted_id
    logger.info("Invitation %s queued for %s", _id, data["to"])
    return serialize({"_id": _id, **data})


@app.get("/invitations")
def list_invitations(user: AuthUser = Depends(get_current_user)):
    return get_documents(get_collection("invitations"), {"company_id": user.company_id})


# ---------- Dashboard ----------

@app.get("/dashboard/summary")
def dashboard_summary(user: AuthUser = Depends(get_current_user)):
    scope = {"company_id": user.company_id}
    kpis = get_documents(get_collection("kpis"), scope)
    status_cards = sorted(get_documents(get_collection("status_overview"), scope), key=lambda c: c.get("order") or 0)
    tasks = get_documents(get_collection("tasks"), scope, limit=20)
    clients = get_documents(get_collection("clients"), scope)
    return {
        "kpis": kpis,
        "status_cards": status_cards,
        "tasks": [t for t in tasks if t.get("status") != "completed"][:6],
        "counts": listing.tab_counts(clients),
    }


@app.post("/admin/seed")
def seed_dashboard(user: AuthUser = Depends(get_current_user)):
    if database.db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return seed.seed_database(database.db, user.company_id)


@app.get("/")
def root():
    return {"message": "XORA API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    if database.db is not None:
        response["database"] = "Available"
        response["database_url"] = "Set" if os.getenv("DATABASE_URL") else "Not Set"
        response["database_name"] = "Set" if os.getenv("DATABASE_NAME") else "Not Set"
        response["connection_status"] = "Connected"
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "Connected & Working"
        except Exception as e:
            logger.warning("Database check failed: %s", e)
            response["database"] = f"Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
