import io
import qrcode
import structlog

from fastapi import HTTPException


log = structlog.get_logger()

def generate_qr_code(data: str, box_size: int = 8) -> io.BytesIO:
    """
    Build a QR code for ``data`` (the registration ID on certificates, so the
    desk can scan it at check-in) and return it as an in-memory PNG.

    :raises HTTPException: when the image cannot be produced.
    """
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=2,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white").convert("RGB")

        img_bytes = io.BytesIO()
        img.save(img_bytes, format="PNG")
        img_bytes.seek(0)
        return img_bytes

    except Exception as e:
        log.error("qrcode.failed", error=str(e), data=data)
        raise HTTPException(status_code=500, detail="Failed to generate QR code")
