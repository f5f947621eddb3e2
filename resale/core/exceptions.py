from fastapi import HTTPException, status


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Invalid or missing authentication"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class MissingArgumentError(HTTPException):
    def __init__(self, *names: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required argument(s): {', '.join(names)}",
        )


class TicketNotFoundError(HTTPException):
    def __init__(self, event_id: str, ticket_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ticket {ticket_id} not found for event {event_id}",
        )


class SellerAccountNotFoundError(HTTPException):
    def __init__(self, user_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No payout account for user {user_id}",
        )


class PayableProfileNotFoundError(HTTPException):
    def __init__(self, user_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No payable profile for user {user_id}",
        )


class TicketPriceMissingError(HTTPException):
    def __init__(self, ticket_id: str):
        super().__init__(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail=f"Ticket {ticket_id} has no price",
        )


class TicketSellerMissingError(HTTPException):
    def __init__(self, ticket_id: str):
        super().__init__(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail=f"Ticket {ticket_id} has no seller",
        )


class SellerNotOnboardedError(HTTPException):
    def __init__(self, seller_id: str):
        super().__init__(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail=f"Seller {seller_id} has not set up a payout account",
        )


class SellerTransfersInactiveError(HTTPException):
    def __init__(self, seller_id: str):
        super().__init__(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail=f"Seller {seller_id} cannot receive transfers yet",
        )


class TicketAlreadySoldError(HTTPException):
    def __init__(self, ticket_id: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=f"Ticket {ticket_id} is already sold")


class TicketOnHoldError(HTTPException):
    def __init__(self, ticket_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Ticket {ticket_id} already has a payment in progress",
        )


# ── Non-HTTP errors raised below the API layer ──

class DocumentDecodeError(Exception):
    """A stored document is missing a required field or has a wrong-typed field."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot decode document {path}: {reason}")


class DocumentExistsError(Exception):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Document {path} already exists")


class IdentityResolutionError(Exception):
    def __init__(self, user_id: str, reason: str = "user not found"):
        self.user_id = user_id
        super().__init__(f"Cannot resolve identity for {user_id}: {reason}")


class WebhookVerificationError(Exception):
    """Signature, secret or payload check failed for an inbound processor webhook."""
