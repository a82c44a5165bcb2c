"""
Users blueprint: role-gated resources.
- GET    /users/all                  ADMIN
- POST   /users/course               INSTRUCTOR
- GET    /users/instructor/courses   INSTRUCTOR
- GET    /users/courses              any role
- GET    /users/courses/<id>         any role
- PATCH  /users/courses/<id>         INSTRUCTOR (owner)
- DELETE /users/courses/<id>         INSTRUCTOR (owner) or ADMIN
"""
from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, g, abort, current_app

from models import storage
from models.course import Course
from models.role import Role
from models.schemas.course import CourseCreateSchema, CourseOutSchema, CourseUpdateSchema
from models.schemas.user import UserOutSchema
from services.errors import Forbidden
from utils.decorators import jwt_required, roles_required

from .responses import success_response

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_list_out_schema = UserOutSchema(many=True)
course_create_schema = CourseCreateSchema()
course_update_schema = CourseUpdateSchema()
course_out_schema = CourseOutSchema()
courses_out_schema = CourseOutSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def _get_course_or_404(course_id: str) -> Course:
    course = storage.get(Course, course_id)
    if not course:
        abort(404, description="Course not found")
    return course


@bp.get("/all")
@jwt_required()
@roles_required(Role.ADMIN)
def list_users():
    """
    List all users, newest first - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    credentials = current_app.extensions["session_engine"].credentials
    rows, total = credentials.list_users(page, limit)
    return success_response(
        "Users retrieved",
        data=user_list_out_schema.dump(rows),
        count=len(rows),
        meta={"page": page, "limit": limit, "total": total},
    )


@bp.post("/course")
@jwt_required()
@roles_required(Role.INSTRUCTOR)
def create_course():
    """
    Create a course owned by the calling instructor
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            description: { type: string }
    responses:
      201: { description: Created }
      403: { description: Forbidden }
      422: { description: Validation error }
    """
    data = course_create_schema.load(request.get_json(silent=True) or {})
    course = Course(
        title=data["title"],
        description=data.get("description"),
        instructor_id=g.current_identity.id,
    )
    storage.new(course)
    storage.save()
    return success_response("Course created", 201, data=course_out_schema.dump(course))


@bp.get("/instructor/courses")
@jwt_required()
@roles_required(Role.INSTRUCTOR)
def my_courses():
    """
    Courses owned by the calling instructor
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    session = storage.get_session()
    rows = (
        session.query(Course)
        .filter(Course.instructor_id == g.current_identity.id)
        .order_by(Course.created_at.desc())
        .all()
    )
    return success_response("Courses retrieved", data=courses_out_schema.dump(rows), count=len(rows))


@bp.get("/courses")
@jwt_required()
@roles_required(Role.ADMIN, Role.INSTRUCTOR, Role.EMPLOYEE)
def list_courses():
    """
    All courses - any authenticated role
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = storage.get_session().query(Course)
    total = query.count()
    rows = query.order_by(Course.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        "Courses retrieved",
        data=courses_out_schema.dump(rows),
        count=len(rows),
        meta={"page": page, "limit": limit, "total": total},
    )


@bp.get("/courses/<course_id>")
@jwt_required()
@roles_required(Role.ADMIN, Role.INSTRUCTOR, Role.EMPLOYEE)
def get_course(course_id: str):
    """
    One course by id
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    parameters:
      - in: path
        name: course_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    course = _get_course_or_404(course_id)
    return success_response("Course retrieved", data=course_out_schema.dump(course))


@bp.patch("/courses/<course_id>")
@jwt_required()
@roles_required(Role.INSTRUCTOR)
def update_course(course_id: str):
    """
    Update a course - owning instructor only
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: course_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            description: { type: string }
    responses:
      200: { description: OK }
      403: { description: Not the owner }
      404: { description: Not found }
    """
    course = _get_course_or_404(course_id)
    if course.instructor_id != g.current_identity.id:
        raise Forbidden("You can only modify your own courses")
    data = course_update_schema.load(request.get_json(silent=True) or {})
    for key, value in data.items():
        setattr(course, key, value)
    storage.new(course)
    storage.save()
    return success_response("Course updated", data=course_out_schema.dump(course))


@bp.delete("/courses/<course_id>")
@jwt_required()
@roles_required(Role.ADMIN, Role.INSTRUCTOR)
def delete_course(course_id: str):
    """
    Delete a course - owning instructor or admin
    ---
    tags:
      - Courses
    security:
      - Bearer: []
    parameters:
      - in: path
        name: course_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      403: { description: Not the owner }
      404: { description: Not found }
    """
    course = _get_course_or_404(course_id)
    identity = g.current_identity
    if identity.role != Role.ADMIN and course.instructor_id != identity.id:
        raise Forbidden("You can only delete your own courses")
    storage.delete(course)
    storage.save()
    return success_response("Course deleted")
