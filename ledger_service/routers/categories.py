from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..db import get_session
from ..errors import ForbiddenError, InvalidFieldError, NotFoundError
from ..models import CustomCategory
from ..reconciler import parse_type
from ..schemas import CategoryIn, category_out
from ..security import get_user

router = APIRouter(prefix="/categories", tags=["categories"])

def _load_owned(session: Session, cat_id: str, user: str) -> CustomCategory:
    cat = session.get(CustomCategory, cat_id)
    if not cat:
        raise NotFoundError("Category not found")
    if cat.user_id != user:
        raise ForbiddenError("Forbidden")
    return cat

@router.get("")
def list_categories(user=Depends(get_user), session: Session = Depends(get_session)):
    categories = session.exec(
        select(CustomCategory).where(CustomCategory.user_id == user).order_by(CustomCategory.created_at)
    ).all()
    return [category_out(cat) for cat in categories]

@router.post("", status_code=201)
def create_category(body: CategoryIn, user=Depends(get_user), session: Session = Depends(get_session)):
    if not body.name or not body.icon or not body.type:
        raise InvalidFieldError(None, "Name, icon, and type are required")
    cat = CustomCategory(
        user_id=user,
        name=body.name,
        name_en=body.name_en or body.name,
        icon=body.icon,
        type=parse_type(body.type),
    )
    session.add(cat)
    session.commit()
    session.refresh(cat)
    return category_out(cat)

@router.put("/{cat_id}")
def update_category(cat_id: str, body: CategoryIn, user=Depends(get_user), session: Session = Depends(get_session)):
    cat = _load_owned(session, cat_id, user)
    cat.name = body.name or cat.name
    if body.name_en is not None:
        cat.name_en = body.name_en
    cat.icon = body.icon or cat.icon
    session.add(cat)
    session.commit()
    session.refresh(cat)
    return category_out(cat)

@router.delete("/{cat_id}")
def delete_category(cat_id: str, user=Depends(get_user), session: Session = Depends(get_session)):
    cat = _load_owned(session, cat_id, user)
    session.delete(cat)
    session.commit()
    return {"success": True}
