"""
Form validation and input sanitization

Rules used by every public form (story wizard, vendor application,
newsletter signup). Each validator returns a ValidationResult instead of
raising so callers can collect field errors.
"""
import re
from typing import Optional, List
from urllib.parse import urlparse

import bleach
from pydantic import BaseModel, Field


EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

EMAIL_DOMAIN_TYPOS = {
    'gmai.com': 'gmail.com',
    'gmial.com': 'gmail.com',
    'gnail.com': 'gmail.com',
    'yahooo.com': 'yahoo.com',
    'yaho.com': 'yahoo.com',
    'hotmial.com': 'hotmail.com',
    'hotmil.com': 'hotmail.com',
}

SUSPICIOUS_EMAIL_PATTERNS = ('javascript', 'script', '<', '>')
SUSPICIOUS_URL_HOSTS = ('javascript', 'data', 'vbscript')

WEAK_PASSWORD_PATTERNS = [
    re.compile(r"123456"),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"letmein", re.IGNORECASE),
]
SPECIAL_CHAR_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

ALLOWED_HTML_TAGS = ['p', 'br', 'strong', 'em', 'u', 'ol', 'ul', 'li']


class ValidationResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None


class PasswordStrength(BaseModel):
    is_valid: bool
    score: int = Field(..., ge=0, le=5)
    label: str
    feedback: List[str] = Field(default_factory=list)
    error: Optional[str] = None


def validate_email(email: Optional[str]) -> ValidationResult:
    if not email or not email.strip():
        return ValidationResult(is_valid=False, error="Email is required")

    email = email.strip()

    if len(email) > 254:
        return ValidationResult(is_valid=False, error="Email is too long")

    if any(pattern in email.lower() for pattern in SUSPICIOUS_EMAIL_PATTERNS):
        return ValidationResult(is_valid=False, error="Suspicious email format detected")

    if not EMAIL_RE.match(email):
        return ValidationResult(is_valid=False, error="Please enter a valid email address")

    domain = email.split("@")[1].lower()
    if domain in EMAIL_DOMAIN_TYPOS:
        local_part = email.split("@")[0]
        return ValidationResult(
            is_valid=False,
            error=f"Did you mean {local_part}@{EMAIL_DOMAIN_TYPOS[domain]}?"
        )

    return ValidationResult(is_valid=True)


def validate_phone(phone: Optional[str]) -> ValidationResult:
    """US numbers: 10 digits, or 11 starting with the country code 1"""
    if not phone or not phone.strip():
        return ValidationResult(is_valid=False, error="Phone number is required")

    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10 or (len(digits) == 11 and digits.startswith("1")):
        return ValidationResult(is_valid=True)

    return ValidationResult(is_valid=False, error="Please enter a valid phone number (10 digits)")


def format_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone


def strength_label(score: int) -> str:
    if score <= 1:
        return "Very Weak"
    if score <= 2:
        return "Weak"
    if score <= 3:
        return "Fair"
    if score <= 4:
        return "Good"
    return "Strong"


def check_password_strength(password: Optional[str]) -> PasswordStrength:
    if not password:
        return PasswordStrength(
            is_valid=False, score=0, label=strength_label(0), error="Password is required"
        )

    feedback = []
    score = 0

    if len(password) < 8:
        feedback.append("Password must be at least 8 characters long")
    else:
        score += 1

    if not re.search(r"[a-z]", password):
        feedback.append("Add lowercase letters")
    else:
        score += 1

    if not re.search(r"[A-Z]", password):
        feedback.append("Add uppercase letters")
    else:
        score += 1

    if not re.search(r"\d", password):
        feedback.append("Add numbers")
    else:
        score += 1

    if not SPECIAL_CHAR_RE.search(password):
        feedback.append("Add special characters (!@#$%^&* etc.)")
    else:
        score += 1

    if any(pattern.search(password) for pattern in WEAK_PASSWORD_PATTERNS):
        feedback.append("Avoid common patterns")
        score = max(0, score - 2)

    return PasswordStrength(
        is_valid=score >= 3 and len(password) >= 8,
        score=score,
        label=strength_label(score),
        feedback=feedback,
    )


def validate_url(url: Optional[str]) -> ValidationResult:
    """Empty URLs are allowed; otherwise http(s) only"""
    if not url:
        return ValidationResult(is_valid=True)

    try:
        parsed = urlparse(url)
    except ValueError:
        return ValidationResult(is_valid=False, error="Invalid URL format")

    if not parsed.scheme or not parsed.netloc:
        return ValidationResult(is_valid=False, error="Invalid URL format")

    if parsed.scheme not in ("http", "https"):
        return ValidationResult(is_valid=False, error="Only HTTP and HTTPS URLs are allowed")

    hostname = (parsed.hostname or "").lower()
    if any(word in hostname for word in SUSPICIOUS_URL_HOSTS):
        return ValidationResult(is_valid=False, error="Suspicious URL detected")

    return ValidationResult(is_valid=True)


def sanitize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = re.sub(r"[<>]", "", text)
    text = re.sub(r"javascript:", "", text, flags=re.IGNORECASE)
    text = re.sub(r"on\w+\s*=", "", text, flags=re.IGNORECASE)
    return text.strip()


def sanitize_html(html: Optional[str]) -> str:
    """Keep basic formatting tags only, no attributes"""
    if not html:
        return ""
    return bleach.clean(html, tags=ALLOWED_HTML_TAGS, attributes={}, strip=True, strip_comments=True)


def slugify(text: str) -> str:
    """'Solar Shade 2.0!' -> 'solar-shade-2-0'"""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower())
    return slug.strip("-")
