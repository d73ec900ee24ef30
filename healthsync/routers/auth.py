from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from healthsync.database import get_db, unit_of_work
from healthsync.models.user import User, Role, DoctorStatus
from healthsync.core.security import verify_password, get_password_hash, create_access_token, get_current_active_user
from healthsync.core.errors import Conflict
from healthsync.schemas import CamelModel, UserResponse
from pydantic import EmailStr, Field
from typing import Optional

router = APIRouter(prefix="/api/auth", tags=["authentication"])


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = Role.PATIENT
    specialization: Optional[str] = None
    license_number: Optional[str] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class Token(CamelModel):
    access_token: str
    token_type: str
    user: UserResponse


def _token_for(user: User) -> dict:
    access_token = create_access_token(data={"sub": user.email})
    return {"access_token": access_token, "token_type": "bearer", "user": user}


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    # Check if user already exists
    if db.query(User).filter(User.email == user_data.email).first():
        raise Conflict("User already exists")

    # Doctors wait for approval before they can use the doctor dashboard
    initial_status = DoctorStatus.PENDING if user_data.role == Role.DOCTOR else DoctorStatus.APPROVED
    db_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        status=initial_status,
        specialization=user_data.specialization,
        license_number=user_data.license_number,
    )
    with unit_of_work(db):
        db.add(db_user)
    db.refresh(db_user)
    return _token_for(db_user)


@router.post("/login", response_model=Token)
async def login(user_data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == user_data.email).first()
    if not user or not verify_password(user_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
