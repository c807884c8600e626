# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTML and plain-text layouts for messages the gateway writes itself."""

CONTACT_SUBJECT_PREFIX = "Portfolio Contact: "

_BASE_STYLE = """
    body {
      font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
      line-height: 1.6;
      color: #333;
      max-width: 600px;
      margin: 0 auto;
      padding: 20px;
    }
    .container {
      background: #ffffff;
      border-radius: 15px;
      overflow: hidden;
      box-shadow: 0 10px 30px rgba(0,0,0,0.1);
    }
    .header {
      color: white;
      padding: 30px;
      text-align: center;
    }
    .header h1 { margin: 0; font-size: 24px; }
    .content { padding: 30px; }
    .field {
      margin-bottom: 20px;
      padding: 15px;
      border-radius: 8px;
    }
    .field strong { display: block; margin-bottom: 5px; }
    .footer {
      background: #f8f9fa;
      padding: 20px;
      text-align: center;
      color: #6c757d;
      font-size: 14px;
    }
"""

CONTACT_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>New Contact Message</title>
  <style>{style}
    .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }}
    .field {{ background: #f8f9fa; border-left: 4px solid #667eea; }}
    .field strong {{ color: #495057; }}
    .message-content {{
      white-space: pre-wrap;
      background: white;
      padding: 15px;
      border-radius: 5px;
      border: 1px solid #e9ecef;
    }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>&#128231; New Contact Message</h1>
      <p>Portfolio Contact Form Submission</p>
    </div>
    <div class="content">
      <div class="field"><strong>&#128100; Name:</strong>{name}</div>
      <div class="field"><strong>&#128231; Email:</strong><a href="mailto:{email}">{email}</a></div>
      <div class="field"><strong>&#128221; Subject:</strong>{subject}</div>
      <div class="field"><strong>&#128172; Message:</strong><div class="message-content">{message}</div></div>
    </div>
    <div class="footer">
      <p>Received on {received}</p>
      <p>Reply directly to this email to respond to {name}</p>
    </div>
  </div>
</body>
</html>
"""

CONTACT_TEXT = """New Contact Form Message

From: {name} ({email})
Subject: {subject}

Message:
{message}

Sent on: {received}
"""

STARTUP_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Email API Server Started</title>
  <style>{style}
    .container {{ border: 2px solid #10b981; }}
    .header {{ background: linear-gradient(135deg, #10b981 0%, #059669 100%); }}
    .field {{ background: #f0fdf4; border-left: 4px solid #10b981; }}
    .field strong {{ color: #065f46; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Email API Server Started Successfully!</h1>
      <p>Your email service is now running and ready to handle requests</p>
    </div>
    <div class="content">
      <div class="field"><strong>Startup Time:</strong>{started}</div>
      <div class="field"><strong>Environment:</strong>{environment}</div>
      <div class="field"><strong>SMTP Host:</strong>{smtp_host}:{smtp_port}</div>
      <div class="field"><strong>From Email:</strong>{from_email}</div>
      <div class="field"><strong>Default Recipient:</strong>{to_email}</div>
      <div class="field"><strong>Available Endpoints:</strong>
        <ul>
          <li>GET /health - Health check</li>
          <li>POST /api/contact-form - Contact form submission</li>
          <li>POST /api/send-email - Generic email sending</li>
        </ul>
      </div>
      <p>This automated email confirms that your email API service is working correctly
      and can send emails successfully.</p>
    </div>
    <div class="footer">
      <p>This is an automated startup notification from your Email API Server</p>
      <p>Server Version: {version} | Generated at {started}</p>
    </div>
  </div>
</body>
</html>
"""

STARTUP_TEXT = """EMAIL API SERVER STARTUP NOTIFICATION

Server Status: ONLINE
Startup Time: {started}
Environment: {environment}
SMTP Host: {smtp_host}:{smtp_port}
From Email: {from_email}
Default Recipient: {to_email}

Available Endpoints:
- GET /health - Health check
- POST /api/contact-form - Contact form submission
- POST /api/send-email - Generic email sending

This automated email confirms that your email API service is working correctly
and can send emails successfully.

Server Version: {version}
Generated at {started}
"""


def render_contact_html(**fields: str) -> str:
    return CONTACT_HTML.format(style=_BASE_STYLE, **fields)


def render_contact_text(**fields: str) -> str:
    return CONTACT_TEXT.format(**fields)


def render_startup_html(**fields: str) -> str:
    return STARTUP_HTML.format(style=_BASE_STYLE, **fields)


def render_startup_text(**fields: str) -> str:
    return STARTUP_TEXT.format(**fields)
