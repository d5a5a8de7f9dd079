from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException

from clearance.models.RequirementDefinition import RequirementDefinition, RequirementScope
from clearance.models.Student import Student, StudentCreate
from clearance.services.LogService import LogService


class StudentService:

    log_service = LogService()

    def add_student(self, *, session: Session, data: StudentCreate, actor_id: str) -> Student:
        student = Student.model_validate(data)
        session.add(student)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=409, detail=f"Student {data.school_id} already exists")
        session.refresh(student)

        self.log_service.create_log_entry(
            session=session,
            action="STUDENT_ADDED",
            description=f"User {actor_id} added student {student.school_id}",
            actor_id=actor_id,
        )
        return student

    def get_students(self, *, session: Session, department: str | None = None) -> list[Student]:
        query = select(Student).order_by(Student.last_name, Student.first_name)
        if department:
            query = query.where(Student.department == department)
        return list(session.exec(query).all())

    def get_by_school_id(self, *, session: Session, school_id: str) -> Student | None:
        return session.exec(select(Student).where(Student.school_id == school_id)).first()

    def match_requirement(self, *, session: Session, requirement: RequirementDefinition) -> list[Student]:
        """Roster students a requirement definition applies to.

        Institution-wide requirements cover everyone. Department requirements
        cover the department. Course requirements also narrow by year level
        and, when the student lists course codes, by course code.
        """
        query = select(Student)
        if requirement.scope != RequirementScope.INSTITUTIONAL.value and requirement.department:
            query = query.where(Student.department == requirement.department)
        if requirement.scope == RequirementScope.COURSE.value and requirement.year_level:
            query = query.where(Student.year_level == requirement.year_level)

        students = list(session.exec(query).all())
        if requirement.scope == RequirementScope.COURSE.value and requirement.course_code:
            students = [
                s for s in students
                if not s.course_codes or requirement.course_code in s.course_codes
            ]
        return students
