from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.database import get_db
from clinic_backend.models.doctor import Doctor
from clinic_backend.models.patient import Patient
from clinic_backend.models.user import User
from clinic_backend.services.access_policy import Caller

security = HTTPBearer()


def build_caller(user: User, db: Session) -> Caller:
    patient = db.query(Patient).filter(Patient.user_id == user.id).first()
    doctor = db.query(Doctor).filter(Doctor.user_id == user.id).first()
    return Caller(
        user_id=user.id,
        email=user.email,
        role=(user.role or '').strip().lower(),
        patient_id=patient.id if patient else None,
        doctor_id=doctor.id if doctor else None,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Caller:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return build_caller(user, db)
