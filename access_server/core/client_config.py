# access_server/core/client_config.py
"""
Client configuration rendering
Builds wg-quick files and QR codes from a Device's server snapshot
"""

import io
from typing import Optional

import qrcode

from access_server.database.models import Device

PRIVATE_KEY_PLACEHOLDER = "<client private key>"


def render_client_config(device: Device, private_key: Optional[str] = None) -> str:
    """
    Generate the WireGuard config file content for a client device

    The server only ever sees the client's public key, so the private key
    line carries a placeholder unless the caller supplies the key.
    """
    config_lines = [
        "[Interface]",
        f"PrivateKey = {private_key or PRIVATE_KEY_PLACEHOLDER}",
        f"Address = {device.address}",
    ]

    if device.dns:
        config_lines.append(f"DNS = {device.dns}")

    config_lines += [
        "",
        "[Peer]",
        f"PublicKey = {device.server_public_key}",
        f"AllowedIPs = 0.0.0.0/0",
        f"Endpoint = {device.endpoint}",
        f"PersistentKeepalive = 25",
    ]

    return "\n".join(config_lines) + "\n"


def generate_qr_code(config_text: str) -> bytes:
    """
    Generate QR code from WireGuard config
    Returns PNG image bytes for mobile WireGuard apps
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(config_text)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
