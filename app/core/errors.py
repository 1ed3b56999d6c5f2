"""Kayıt yaşam döngüsü hataları. API katmanında HTTP yanıtlarına çevrilir (app/main.py)."""


class RecordError(Exception):
    """Tüm kayıt deposu / analiz hatalarının kökü."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(RecordError):
    """Geçersiz girdi (örn. boş dosya adı); hiçbir değişiklik yapılmadan reddedilir."""

    status_code = 400


class NotFound(RecordError):
    """Kayıt yok veya çağıranın değil; ikisi birbirinden ayırt edilemez."""

    status_code = 404

    def __init__(self, message: str = "Image not found"):
        super().__init__(message)


class InvalidTransition(RecordError):
    """Pending olmayan bir kaydı değiştirme girişimi (çift işleme koruması)."""

    status_code = 409


class ProcessingFailure(RecordError):
    """İşçi görseli analiz edemedi; kayıt failed durumuna geçer, HTTP'ye yansımaz."""

    status_code = 500
