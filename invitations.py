"""
Team invitations.

An invitation document doubles as an outgoing e-mail for a mail-trigger
worker watching the ``invitations`` collection: ``to`` and
``message.subject`` / ``message.html`` are the fields it reads.
"""
import os
from html import escape
from typing import Any, Dict
from urllib.parse import quote

APP_URL = os.getenv("APP_URL", "http://localhost:5173")
DEFAULT_COMPANY_NAME = "Xora Partner"


def registration_link(company_id: str, email: str, role: str, app_url: str = APP_URL) -> str:
    return f"{app_url.rstrip('/')}/register?inviteId={company_id}&email={quote(email, safe='')}&role={quote(role)}"


def render_email(first_name: str, inviter: str, company_name: str, role: str, link: str) -> Dict[str, str]:
    company = escape(company_name or "votre agence")
    html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; border: 1px solid #eee; border-radius: 12px; padding: 24px;">
          <h2 style="color: #111827;">Bonjour {escape(first_name)},</h2>
          <p style="color: #4b5563; line-height: 1.6;">
            <strong>{escape(inviter)}</strong> vous invite à rejoindre l'équipe de <strong>{company}</strong> sur la plateforme XORA en tant que <strong>{escape(role)}</strong>.
          </p>
          <div style="margin: 32px 0; text-align: center;">
            <a href="{escape(link)}" style="background-color: #111827; color: white; padding: 12px 24px; border-radius: 8px; text-decoration: none; font-weight: bold; display: inline-block;">
              Accepter l'invitation et créer mon mot de passe
            </a>
          </div>
          <p style="color: #9ca3af; font-size: 12px;">
            Si vous n'êtes pas à l'origine de cette demande, vous pouvez ignorer cet email.
          </p>
        </div>
    """
    return {
        "subject": f"Invitation à rejoindre {company_name or 'Xora'}",
        "html": html,
    }


def build_invitation(email: str, first_name: str, last_name: str, role: str, inviter: Dict[str, Any]) -> Dict[str, Any]:
    to = email.lower().strip()
    link = registration_link(inviter["company_id"], to, role)
    return {
        "to": to,
        "message": render_email(first_name, inviter["name"], inviter.get("company_name"), role, link),
        "first_name": first_name,
        "last_name": last_name,
        "role": role,
        "company_id": inviter["company_id"],
        "company_name": inviter.get("company_name") or DEFAULT_COMPANY_NAME,
        "invited_by": inviter["name"],
        "invited_by_uid": inviter["_id"],
        "status": "pending",
    }
