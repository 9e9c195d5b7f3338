from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from bidflow.db.session import get_db
from bidflow.db.models import Company, SubContractor, User
from bidflow.utils.permissions import Role
from bidflow.utils.security import hash_password, verify_password, create_access_token
from bidflow.schemas.auth import UserCreate, UserLogin, Token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=201)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register an EPC or sub-contractor login"""
    user = db.query(User).filter(User.email == user_data.email).first()
    if user:
        raise HTTPException(status_code=400, detail="Email already registered")
    try:
        password_hash = hash_password(user_data.password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        password_hash=password_hash,
        role=user_data.role,
    )

    if user_data.role == Role.EPC:
        if user_data.company_id:
            company = db.query(Company).filter(Company.id == user_data.company_id).first()
            if not company:
                raise HTTPException(status_code=404, detail="Company not found")
        elif user_data.company_name:
            company = Company(name=user_data.company_name)
            db.add(company)
        else:
            raise HTTPException(status_code=400, detail="EPC users need a company_id or company_name")
        new_user.company = company

    db.add(new_user)
    db.flush()

    if user_data.role == Role.SUBCONTRACTOR:
        db.add(SubContractor(
            company_name=user_data.company_name or user_data.email,
            owner_name=user_data.name,
            user_id=new_user.id,
        ))

    db.commit()
    db.refresh(new_user)
    logger.info(f"Registered {new_user.role} user {new_user.id}")

    token = create_access_token({"sub": str(new_user.id)})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": str(new_user.id),
        "role": new_user.role,
    }


@router.post("/login", response_model=Token)
def login(user_data: UserLogin, db: Session = Depends(get_db)):
    """Login with email/password - returns access token"""
    user = db.query(User).filter(User.email == user_data.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )
    try:
        ok = verify_password(user_data.password, user.password_hash)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )
    token = create_access_token({"sub": str(user.id)})
    return {"access_token": token, "token_type": "bearer", "user_id": str(user.id), "role": user.role}
