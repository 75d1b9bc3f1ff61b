"""aws-saml-login - short-lived AWS credentials via Azure AD SAML federation."""

__version__ = "0.3.0"
