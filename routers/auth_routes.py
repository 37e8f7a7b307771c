from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from middleware.first_run import ensure_admin_account
from models.user import User
from schemas.auth import ChangePasswordIn, LoginIn, RegisterIn, TokenOut, UserOut
from services.auth import authenticate_user, change_password, create_user, create_user_token, get_current_user
from services.errors import ConflictError, ValidationError

router = APIRouter(dependencies=[Depends(ensure_admin_account)])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    return TokenOut(token=create_user_token(user), user=UserOut.model_validate(user))


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    try:
        user = create_user(db, username=payload.username, password=payload.password, email=payload.email)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.message)
    return TokenOut(token=create_user_token(user), user=UserOut.model_validate(user))


@router.get("/verify", response_model=UserOut)
def verify(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/change-password")
def update_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        change_password(db, current_user, payload.current_password, payload.new_password)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    return {"message": "Password updated successfully"}
