"""
Services Module

- auth_service: registration, OTP login, token rotation, password flows
- user_store: credential store over the User model
- mailer / mail_templates: SMTP delivery of templated emails
"""
