from __future__ import annotations


class AdGenerationError(Exception):
    """Base error. `user_message` is safe to show in the UI; str(exc) is for logs."""

    user_message = "حدث خطأ غير متوقع. يرجى المحاولة مرة أخرى."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ConfigurationError(AdGenerationError):
    user_message = "لا يمكن تهيئة خدمة الذكاء الاصطناعي. يرجى التأكد من أن مفتاح API الخاص بك قد تم إعداده بشكل صحيح."


class InputError(AdGenerationError):
    user_message = "تعذر قراءة الصورة المرفوعة. يرجى اختيار ملف صورة صالح."


class GenerationError(AdGenerationError):
    user_message = "تعذر توليد الأفكار الإعلانية لهذا المنتج. يرجى المحاولة مرة أخرى."


class AllAttemptsFailedError(AdGenerationError):
    user_message = "فشلت جميع محاولات توليد الصور الإعلانية. يرجى المحاولة مرة أخرى."
