"""
Checklist engine exceptions.
"""


class ChecklistError(Exception):
    """Base class for checklist engine errors."""


class TemplateError(ChecklistError):
    """
    Template authoring defect detected while parsing a template.

    Raised for duplicate item ids, a showWhen pointing at an unknown item,
    a group_selection without subpoints or an unknown inputType. These cannot
    be recovered per component, so the template is rejected as a whole.
    """

    def __init__(self, message, template_id=None, problems=None):
        super().__init__(message)
        self.template_id = template_id
        self.problems = problems or [message]
