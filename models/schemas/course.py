from marshmallow import Schema, fields, validate


class CourseCreateSchema(Schema):
    title = fields.String(required=True, validate=validate.Length(min=3, max=100))
    description = fields.String(allow_none=True, validate=validate.Length(max=500))


class CourseUpdateSchema(Schema):
    title = fields.String(validate=validate.Length(min=3, max=100))
    description = fields.String(allow_none=True, validate=validate.Length(max=500))


class CourseOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String(allow_none=True)
    instructor_id = fields.String()
    instructor_name = fields.Method("get_instructor_name")
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

    def get_instructor_name(self, obj):
        instructor = getattr(obj, "instructor", None)
        if instructor is None:
            return None
        return " ".join(p for p in (instructor.first_name, instructor.last_name) if p)
