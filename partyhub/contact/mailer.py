"""
Envoi des emails du formulaire de contact.
- Rendu HTML + texte via Jinja2 (templates/contact_email.*)
- Envoi par l'API HTTP SMTP2GO (httpx), repli sur SMTP (smtplib) si l'API échoue
"""
from pathlib import Path
from typing import Dict, Any
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from partyhub import config

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
_env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(["html"]))

class EmailConfigError(RuntimeError):
    pass

class EmailDeliveryError(RuntimeError):
    pass

def smtp_settings() -> Dict[str, Any]:
    """Lit la configuration SMTP courante; EmailConfigError si incomplète."""
    host, port, user, password = config.SMTP_HOST, config.SMTP_PORT, config.SMTP_USER, config.SMTP_PASS
    if not (host and port and user and password):
        raise EmailConfigError("SMTP configuration is missing")
    try:
        port_num = int(port)
    except ValueError:
        raise EmailConfigError("SMTP_PORT must be an integer")
    return {"host": host, "port": port_num, "user": user, "password": password}

def render_contact_email(context: Dict[str, Any]) -> Dict[str, str]:
    data = dict(context)
    data["message"] = data.get("message") or ""
    return {
        "subject": f"New Contact: {data.get('subject') or ''}",
        "html": _env.get_template("contact_email.html").render(**data),
        "text": _env.get_template("contact_email.txt").render(**data),
    }

def send_via_api(settings: Dict[str, Any], subject: str, html_body: str, text_body: str) -> bool:
    payload = {
        "api_key": settings["password"],
        "to": [settings["user"]],
        "sender": settings["user"],
        "subject": subject,
        "html_body": html_body,
        "text_body": text_body,
    }
    headers = {"Content-Type": "application/json", "X-Smtp2go-Api-Key": settings["password"]}
    try:
        resp = httpx.post(config.SMTP2GO_API_URL, json=payload, headers=headers, timeout=10)
    except httpx.HTTPError:
        logger.exception("contact.mailer.send_via_api failed")
        return False
    if resp.status_code >= 400:
        logger.warning("contact.mailer.send_via_api status=%s", resp.status_code)
        return False
    return True

def send_via_smtp(settings: Dict[str, Any], subject: str, html_body: str, text_body: str) -> None:
    message = MIMEMultipart("alternative")
    message["From"] = settings["user"]
    message["To"] = settings["user"]
    message["Subject"] = subject
    message.attach(MIMEText(text_body, "plain", "utf-8"))
    message.attach(MIMEText(html_body, "html", "utf-8"))

    if settings["port"] == 465:
        client = smtplib.SMTP_SSL(settings["host"], settings["port"], timeout=30)
    else:
        client = smtplib.SMTP(settings["host"], settings["port"], timeout=30)
    with client:
        if settings["port"] != 465:
            client.starttls()
        client.login(settings["user"], settings["password"])
        client.sendmail(settings["user"], [settings["user"]], message.as_string())

def send_contact_email(context: Dict[str, Any]) -> None:
    """
    Envoie la soumission à la boîte du site (SMTP_USER).
    Lève EmailConfigError (configuration absente) ou EmailDeliveryError (API et SMTP en échec).
    """
    settings = smtp_settings()
    email = render_contact_email(context)
    if send_via_api(settings, email["subject"], email["html"], email["text"]):
        logger.info("contact.mailer sent via api")
        return
    try:
        send_via_smtp(settings, email["subject"], email["html"], email["text"])
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("contact.mailer.send_via_smtp failed")
        raise EmailDeliveryError("Failed to send email via SMTP") from e
    logger.info("contact.mailer sent via smtp")
