"""Services for the event registration core.

Modules:
- invitations.py: InvitationWorkflow
- accounts.py: AccountService
- mail.py: EmailSender protocol and the SMTP implementation
- spreadsheet.py: .xlsx reading and template building
- imaging.py: QR image resizing

Import from the modules directly; repositories depend on the leaf
adapters here, and the workflows depend on the repositories.
"""
