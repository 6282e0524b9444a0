"""
Email utility — async SMTP email delivery using aiosmtplib.

Environment variables:
    SMTP_HOST      SMTP server hostname  (default: smtp.gmail.com)
    SMTP_PORT      SMTP server port      (default: 587 → Gmail STARTTLS)
    SMTP_USER      SMTP username / sender email
    SMTP_PASS      SMTP password (Gmail App Password)
    SMTP_USE_TLS   Set to "true" for STARTTLS connections (default: true)
    SMTP_FROM      Sender address        (default: UniVote <noreply@univote.local>)
    FRONTEND_URL   Public URL of the web app, used to build election links
"""

import logging
import os
from email.message import EmailMessage

import aiosmtplib

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587").strip() or "587")
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_FROM = os.getenv("SMTP_FROM", "UniVote <noreply@univote.local>")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")


async def send_email(to: str, subject: str, body_text: str, body_html: str | None = None):
    """Send an email asynchronously via SMTP."""
    msg = EmailMessage()
    msg["From"] = SMTP_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body_text)

    if body_html:
        msg.add_alternative(body_html, subtype="html")

    kwargs: dict = {
        "hostname": SMTP_HOST,
        "port": SMTP_PORT,
        "start_tls": SMTP_USE_TLS,
    }
    if SMTP_USER and SMTP_PASS:
        kwargs["username"] = SMTP_USER
        kwargs["password"] = SMTP_PASS

    try:
        await aiosmtplib.send(msg, **kwargs)
        logger.info(f"Email sent to {to}: {subject}")
    except Exception as e:
        logger.error(f"Failed to send email to {to}: {e}")
        raise


async def send_vote_confirmation_email(
    to_email: str,
    voter_name: str,
    candidate_name: str,
    election_title: str,
    vote_hash: str,
):
    """Tell a voter their ballot was recorded (callers treat this as best effort)."""
    results_url = f"{FRONTEND_URL}/results"
    subject = f"Vote Confirmation — {election_title}"

    body_text = (
        f"Hi {voter_name},\n\n"
        f"Your vote in {election_title} has been recorded.\n\n"
        f"Candidate: {candidate_name}\n"
        f"Vote reference: {vote_hash}\n\n"
        "Keep the reference if you want to look your ballot up later.\n"
        f"Follow the results at {results_url}\n\n"
        "— UniVote"
    )

    body_html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <div style="background: #2563eb; color: white; padding: 20px; text-align: center;">
            <h1 style="margin: 0;">UniVote</h1>
        </div>
        <div style="padding: 30px; background: #f8fafc;">
            <h2>Your vote has been recorded</h2>
            <p>Hi {voter_name},</p>
            <p><strong>Election:</strong> {election_title}</p>
            <p><strong>Candidate:</strong> {candidate_name}</p>
            <p style="color: #64748b; font-size: 14px;">
                Vote reference:<br>
                <code style="background: #e2e8f0; padding: 5px 10px; border-radius: 3px;">
                    {vote_hash}
                </code>
            </p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{results_url}"
                   style="background: #2563eb; color: white; padding: 15px 40px;
                          text-decoration: none; border-radius: 5px; font-size: 18px;">
                    View Results
                </a>
            </div>
        </div>
    </div>
    """

    await send_email(to_email, subject, body_text, body_html)


async def send_welcome_email(to_email: str, voter_name: str):
    """Welcome a newly registered voter and point them at verification."""
    subject = "Welcome to UniVote"

    body_text = (
        f"Hi {voter_name},\n\n"
        "Your UniVote account has been created.\n"
        "An administrator will verify your student record; once verified and\n"
        "with a wallet address bound to your profile you can vote in any\n"
        "active election.\n\n"
        f"{FRONTEND_URL}/elections\n\n"
        "— UniVote"
    )

    body_html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <div style="background: #2563eb; color: white; padding: 20px; text-align: center;">
            <h1 style="margin: 0;">UniVote</h1>
        </div>
        <div style="padding: 30px; background: #f8fafc;">
            <h2>Welcome, {voter_name}</h2>
            <p>Your account has been created.</p>
            <ol>
                <li>Wait for your student record to be verified.</li>
                <li>Bind your wallet address in your profile.</li>
                <li>Vote in any active election.</li>
            </ol>
            <p><a href="{FRONTEND_URL}/elections">Browse elections</a></p>
        </div>
    </div>
    """

    await send_email(to_email, subject, body_text, body_html)
