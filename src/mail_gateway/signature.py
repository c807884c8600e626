# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTML rendering of the operator's signature."""

from __future__ import annotations

from .local_store import Signature

CONTAINER_STYLE = "margin-top: 30px; padding-top: 20px; border-top: 2px solid #e5e7eb;"
ACCENT = "#667eea"


def render_signature_html(signature: Signature) -> str:
    """Render ``signature`` as an HTML block.

    A custom override is emitted alone inside the fixed container and every
    structured field is ignored. Otherwise only non-blank fields produce
    markup, and a signature with no field set renders as an empty string.
    """
    if signature.custom.strip():
        return f'<div style="{CONTAINER_STYLE}">{signature.custom}</div>'

    if not any((signature.name, signature.title, signature.email,
                signature.phone, signature.website, signature.company)):
        return ""

    parts = [f'<div style="{CONTAINER_STYLE} font-family: Arial, sans-serif;">', '<div style="margin-bottom: 20px;">']
    if signature.name:
        parts.append(
            f'<div style="font-size: 18px; font-weight: 700; color: {ACCENT}; margin-bottom: 5px;">{signature.name}</div>'
        )
    if signature.title:
        parts.append(f'<div style="font-size: 14px; color: #6b7280; margin-bottom: 10px;">{signature.title}</div>')
    if signature.company:
        parts.append(
            f'<div style="font-size: 14px; color: #1f2937; margin-bottom: 10px;"><strong>{signature.company}</strong></div>'
        )
    parts.append(
        '<div style="height: 2px; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); '
        'margin: 15px 0; width: 100px;"></div>'
    )
    parts.append('<div style="font-size: 13px; color: #1f2937; line-height: 1.8;">')
    if signature.email:
        parts.append(
            f'<div>\U0001F4E7 <a href="mailto:{signature.email}" style="color: {ACCENT}; text-decoration: none;">'
            f'{signature.email}</a></div>'
        )
    if signature.phone:
        parts.append(f"<div>\U0001F4F1 {signature.phone}</div>")
    if signature.website:
        parts.append(
            f'<div>\U0001F310 <a href="{signature.website}" style="color: {ACCENT}; text-decoration: none;">'
            f'{signature.website}</a></div>'
        )
    parts.append("</div></div></div>")
    return "".join(parts)


def append_signature(content: str, signature: Signature) -> str:
    """Return ``content`` followed by the rendered signature, if any."""
    return content + render_signature_html(signature)
