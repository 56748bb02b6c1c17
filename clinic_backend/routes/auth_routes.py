from fastapi import APIRouter, Depends

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.services.access_policy import Caller

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(current_user: Caller = Depends(get_current_user)):
    return {
        "userId": current_user.user_id,
        "email": current_user.email,
        "role": current_user.role,
        "patientId": current_user.patient_id,
        "doctorId": current_user.doctor_id,
    }
