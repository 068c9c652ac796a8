from html import escape
from urllib.parse import quote

TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Your Cursor Coupon Code</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #000000;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: #000000;">
        <tr>
            <td style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="max-width: 600px; margin: 0 auto; border-radius: 12px; border: 1px solid rgba(255, 255, 255, 0.1);">
                    <tr>
                        <td style="padding: 40px 32px;">
                            <h2 style="margin: 0 0 8px 0; font-size: 28px; font-weight: 400; color: #ffffff;">Hello {first_name},</h2>
                            <p style="margin: 0 0 24px 0; font-size: 16px; color: #d4d4d8; line-height: 1.5;">Thank you for registering for {event_name}.</p>
                            <h3 style="margin: 0 0 12px 0; font-size: 20px; font-weight: 600; color: #ffffff;">Your Cursor Coupon Code</h3>
                            <p style="margin: 0 0 16px 0; font-size: 14px; color: #d4d4d8;">You've received an exclusive coupon code:</p>
                            <div style="background-color: rgba(255, 255, 255, 0.05); border-radius: 8px; padding: 24px; text-align: center;">
                                <div style="font-size: 24px; font-weight: 700; color: #ffffff; letter-spacing: 0.05em; margin-bottom: 16px; font-family: 'Courier New', monospace;">{code}</div>
                                <a href="{redemption_url}" style="display: inline-block; padding: 12px 32px; background-color: #52525b; color: #ffffff; text-decoration: none; border-radius: 6px; font-size: 16px; font-weight: 600;">Redeem Your Credits</a>
                            </div>
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding: 32px 0;">
                            <p style="margin: 0; font-size: 14px; color: #71717a;">{event_name}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def first_name(full_name: str) -> str:
    parts = full_name.split()
    return parts[0] if parts else full_name


def redemption_url(template: str, code: str) -> str:
    return template.format(code=quote(code, safe=""))


def render_coupon_email(
    *,
    name: str,
    code: str,
    event_name: str,
    redemption_url_template: str,
) -> str:
    return TEMPLATE.format(
        first_name=escape(first_name(name)),
        event_name=escape(event_name),
        code=escape(code),
        redemption_url=escape(redemption_url(redemption_url_template, code)),
    )
