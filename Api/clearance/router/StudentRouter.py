from fastapi import APIRouter

from clearance.core.deps import AdminUser, SessionDep, SigningOfficer
from clearance.models.Student import StudentCreate, StudentRead
from clearance.services.StudentService import StudentService

router = APIRouter()
student_service = StudentService()


@router.post("/", status_code=201)
async def add_student(data: StudentCreate, session: SessionDep, current_user: AdminUser) -> StudentRead:
    return student_service.add_student(session=session, data=data, actor_id=current_user.id)


@router.get("/")
async def get_students(session: SessionDep, current_user: SigningOfficer, department: str | None = None) -> list[StudentRead]:
    return student_service.get_students(session=session, department=department)
