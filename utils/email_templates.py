"""HTML and plain-text bodies for outbound emails."""
from html import escape
from typing import Dict, Optional, Tuple

_OTP_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #2563eb; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }
    .content { background: #f9fafb; padding: 30px; border: 1px solid #e5e7eb; }
    .otp-box { background: white; border: 2px solid #2563eb; border-radius: 8px; padding: 20px; text-align: center; margin: 20px 0; }
    .otp-code { font-size: 32px; font-weight: bold; color: #2563eb; letter-spacing: 8px; }
    .footer { text-align: center; padding: 20px; color: #6b7280; font-size: 12px; }
"""


def _minutes(ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def render_otp_email(code: str, display_name: Optional[str], ttl_seconds: int) -> Tuple[str, str]:
    """Return (html, text) for the verification code email."""
    name = escape(display_name or "Patient")
    validity = _minutes(ttl_seconds)
    html = f"""<!DOCTYPE html>
<html>
<head><style>{_OTP_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>Email Verification</h1></div>
    <div class="content">
      <p>Dear {name},</p>
      <p>Thank you for submitting your Pre-Authorization Request. Please use the OTP below
      to verify your email address and complete your submission.</p>
      <div class="otp-box">
        <p style="margin: 0; font-size: 14px; color: #6b7280;">Your OTP Code</p>
        <div class="otp-code">{escape(code)}</div>
        <p style="margin: 10px 0 0 0; font-size: 12px; color: #6b7280;">Valid for {validity}</p>
      </div>
      <p><strong>Important:</strong> Do not share this OTP with anyone. Our staff will never ask for your OTP.</p>
      <p>If you didn't request this verification, please ignore this email.</p>
    </div>
    <div class="footer">
      <p>This is an automated message. Please do not reply to this email.</p>
      <p>Health Insurance Pre-Authorization System</p>
    </div>
  </div>
</body>
</html>"""
    text = (
        f"Dear {display_name or 'Patient'},\n\n"
        f"Your pre-authorization verification code is: {code}\n\n"
        f"It is valid for {validity}. Do not share it with anyone. "
        "If you did not request this, ignore this email."
    )
    return html, text


def render_confirmation_email(claim: Dict[str, str]) -> Tuple[str, str]:
    """Return (html, text) for the submission confirmation email."""
    name = claim.get("patientName", "")
    policy = f"{claim.get('policyPrefix', '')}{claim.get('policyNumber', '')}"
    rows = [
        ("Patient Name", name),
        ("Policy Number", policy),
        ("Hospital", claim.get("hospitalName", "")),
        ("Treatment Type", claim.get("treatmentType", "")),
        ("Estimated Amount", f"₹{claim.get('estimatedAmount', '')}"),
    ]
    details = "\n".join(
        f"        <p><strong>{label}:</strong> {escape(str(value))}</p>" for label, value in rows
    )
    html = f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: #10b981; color: white; padding: 20px; text-align: center;">
    <h1>Request Submitted Successfully</h1>
  </div>
  <div style="padding: 30px; background: #f9fafb;">
    <p>Dear {escape(name)},</p>
    <p>Your pre-authorization request has been successfully submitted.</p>
    <div style="background: white; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3>Request Details:</h3>
{details}
    </div>
    <p>We will review your request and contact you within 24-48 hours.</p>
    <p>Thank you for choosing our services.</p>
  </div>
</div>"""
    text_lines = [f"Dear {name},", "", "Your pre-authorization request has been successfully submitted.", ""]
    text_lines += [f"{label}: {value}" for label, value in rows]
    text_lines += ["", "We will review your request and contact you within 24-48 hours."]
    return html, "\n".join(text_lines)
