# app/core/exceptions.py


class RewardError(Exception):
    """Базовая ошибка реферальных выплат."""


class NoReferrerError(RewardError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} was not referred by anyone")


class MissingWalletError(RewardError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} has no wallet address on file")


class InvalidRewardValueError(RewardError):
    pass


class ReferralCycleError(RewardError):
    """Связь создала бы (или уже создала) цикл в дереве рефералов."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Referral chain of user {user_id} contains a cycle")


class StoreError(RewardError):
    """Хранилище недоступно. Повтор - на стороне вызывающего, с backoff."""


class GatewayError(Exception):
    """
    Перевод токенов не выполнен: сеть, revert контракта, нехватка средств.
    Гарантируется, что средства не ушли.
    """

    def __init__(self, reason: str, tx_hash: str | None = None):
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(reason)


class TransferTimeout(Exception):
    """
    Не дождались подтверждения перевода. Перевод МОГ пройти,
    повторять можно только после сверки по хэшу.
    """

    def __init__(self, tx_hash: str | None = None):
        self.tx_hash = tx_hash
        super().__init__(f"Transfer confirmation timed out (hash={tx_hash})")
