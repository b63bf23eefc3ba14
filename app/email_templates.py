"""
MJML email templates (Spanish, es-CO)
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#0f766e",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

APP_NAME = "Citas Colombia"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{escape(cta_url, quote=True)}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              <a href="{FRONTEND_URL}" style="color: {THEME['text_muted']}; text-decoration: none;">{APP_NAME}</a>
            </mj-text>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
              Recibes este correo porque se registró una cuenta con esta dirección.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def email_verification_template(user_name: str, business_name: str, verification_link: str) -> str:
    """Account verification email sent after unified registration"""
    content = f"""
            <mj-text padding="0 0 16px 0">
              Hola {escape(user_name)},
            </mj-text>
            <mj-text padding="0 0 16px 0">
              Tu negocio <strong>{escape(business_name)}</strong> quedó registrado. Confirma tu email
              para activar tu cuenta y empezar a recibir citas.
            </mj-text>
            <mj-text color="{THEME['text_muted']}" font-size="14px" padding="0">
              Si no creaste esta cuenta puedes ignorar este mensaje.
            </mj-text>
    """
    return get_base_template(
        title="Verifica tu email",
        preview_text=f"Confirma tu cuenta en {APP_NAME}",
        content_sections=content,
        cta_url=verification_link,
        cta_label="Verificar email",
    )
