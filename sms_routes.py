"""
SMS proxy routes: forwards emergency alerts to the Semaphore gateway.
"""
import logging
from typing import Any, Dict, Optional

import arrow
from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from senior_core.emergency.alerts import log_emergency_alert
from senior_core.emergency.sms import SmsDeliveryError
from senior_core.services import Services, get_services

logger = logging.getLogger(__name__)

SERVICE_NAME = "SeniorHub SMS Service"
SERVICE_VERSION = "1.0.0"

sms_router = APIRouter(tags=["Emergency SMS"])


@sms_router.post("/send-emergency-sms")
async def send_emergency_sms(
    alert_data: Optional[Dict[str, Any]] = Body(default=None),
    services: Services = Depends(get_services),
):
    """
    Send the alert's `smsMessage` to its `emergencyContactPhone`.
    """
    alert_data = alert_data or {}
    phone = alert_data.get("emergencyContactPhone")
    message = alert_data.get("smsMessage")
    if not phone or not message:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Missing required fields: emergencyContactPhone and smsMessage"},
        )

    try:
        message_id = await services.sms.send(phone, message)
    except SmsDeliveryError as e:
        logger.error(f"[send_emergency_sms] Error sending emergency SMS: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": e.message},
        )

    log_emergency_alert(alert_data, message_id)
    if services.sms.test_mode:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "success": True,
                "messageId": message_id,
                "message": "SMS request received successfully (test mode)",
                "phone": phone,
            },
        )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "messageId": message_id, "message": "Emergency SMS sent successfully"},
    )


@sms_router.get("/health")
async def health():
    return {"status": "healthy", "timestamp": arrow.utcnow().isoformat(), "service": SERVICE_NAME}


@sms_router.get("/")
async def root():
    return {
        "message": "SeniorHub Emergency SMS Service",
        "version": SERVICE_VERSION,
        "endpoints": {
            "health": "GET /health",
            "sendEmergencySMS": "POST /send-emergency-sms",
        },
    }
