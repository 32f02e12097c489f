"""Member API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import ConflictError, NotFoundError
from app.models.member import Member
from app.schemas.member import MemberCreate, MemberUpdate, MemberOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _email_taken(db: Session, email: str, exclude_member_id: str = None) -> bool:
    query = db.query(Member).filter(Member.email == email)
    if exclude_member_id:
        query = query.filter(Member.member_id != exclude_member_id)
    return query.first() is not None


@router.post("/", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def create_member(payload: MemberCreate, db: Session = Depends(get_db)):
    """Register a church member."""
    if _email_taken(db, payload.email):
        raise ConflictError("A member with this email already exists", "duplicate_email")
    member = Member(**payload.model_dump())
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("Created member %s (%s)", member.member_id, member.full_name)
    return member


@router.get("/", response_model=list[MemberOut])
def list_members(db: Session = Depends(get_db)):
    """List all members, by last name."""
    return db.query(Member).order_by(Member.last_name, Member.first_name).all()


@router.get("/{member_id}", response_model=MemberOut)
def get_member(member_id: str, db: Session = Depends(get_db)):
    """Fetch a single member by ID."""
    member = db.query(Member).filter(Member.member_id == member_id).first()
    if not member:
        raise NotFoundError("Member not found", "member_not_found")
    return member


@router.patch("/{member_id}", response_model=MemberOut)
def update_member(member_id: str, payload: MemberUpdate, db: Session = Depends(get_db)):
    """Update member details (partial update)."""
    member = db.query(Member).filter(Member.member_id == member_id).first()
    if not member:
        raise NotFoundError("Member not found", "member_not_found")
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("email") and _email_taken(db, updates["email"], exclude_member_id=member_id):
        raise ConflictError("A member with this email already exists", "duplicate_email")
    for field, value in updates.items():
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    logger.info("Updated member %s", member_id)
    return member
