"""Mensajes de usuario localizados (zh/en).

Por qué una tabla:
- Los errores del Core llevan una clave + parámetros; el texto final depende
  del idioma del llamador y no de quién lanzó el error.
- La UI original es china; el inglés queda como idioma secundario y de respaldo.
"""

from __future__ import annotations

from typing import Any

from core.domain.errors import CardForgeError
from core.domain.language import Language

MESSAGES: dict[str, dict[Language, str]] = {
    # Errores (clave = error_kind salvo overrides explícitos)
    "configuration_unavailable": {
        Language.CHINESE: "没有可用的 AI 模型配置（{capability}），请先在设置中添加",
        Language.ENGLISH: "No AI model configuration available for '{capability}'; please add one in settings first",
    },
    "provider_request_error": {
        Language.CHINESE: "AI 调用失败 ({status})",
        Language.ENGLISH: "AI provider call failed ({status})",
    },
    "provider_response_format_error": {
        Language.CHINESE: "AI 返回格式异常",
        Language.ENGLISH: "AI provider returned an unexpected response format",
    },
    "async_task_failed": {
        Language.CHINESE: "图像生成失败: {reason}",
        Language.ENGLISH: "Image generation failed: {reason}",
    },
    "async_task_timeout": {
        Language.CHINESE: "图像仍在生成中，请稍后重试",
        Language.ENGLISH: "The image is still processing, please try again later",
    },
    "recovery_parse_error": {
        Language.CHINESE: "AI 输出格式无法解析，请重试",
        Language.ENGLISH: "AI output format could not be parsed, please retry",
    },
    "invalid_request": {
        Language.CHINESE: "请求参数无效: {reason}",
        Language.ENGLISH: "Invalid request: {reason}",
    },
    "cancelled": {
        Language.CHINESE: "操作已取消",
        Language.ENGLISH: "Operation cancelled",
    },
    "internal_error": {
        Language.CHINESE: "请求失败，请稍后重试",
        Language.ENGLISH: "Request failed, please try again later",
    },
    # Validaciones concretas
    "empty_content": {
        Language.CHINESE: "内容不能为空",
        Language.ENGLISH: "Content must not be empty",
    },
    "empty_outline": {
        Language.CHINESE: "大纲不能为空",
        Language.ENGLISH: "Outline must not be empty",
    },
    "invalid_vibe": {
        Language.CHINESE: "无效的风格类型",
        Language.ENGLISH: "Unknown copywriting vibe",
    },
    "invalid_direction": {
        Language.CHINESE: "不支持的翻译方向，请使用 zh2en 或 en2zh",
        Language.ENGLISH: "Unsupported translation direction, use zh2en or en2zh",
    },
    "profile_not_found": {
        Language.CHINESE: "配置不存在",
        Language.ENGLISH: "Configuration not found",
    },
    "image_edit_unsupported": {
        Language.CHINESE: "模型 {model} 是图像编辑模型，需要输入图片。请使用文生图模型如 wanx-v1 或 wanx2.1-t2i-turbo",
        Language.ENGLISH: "Model {model} is an image-edit model and needs an input image. Use a text-to-image model such as wanx-v1 or wanx2.1-t2i-turbo",
    },
    # Resultados de la prueba de conexión
    "connection_ok_text": {
        Language.CHINESE: "文本模型 {model} 连接成功",
        Language.ENGLISH: "Text model {model} connected successfully",
    },
    "connection_ok_image": {
        Language.CHINESE: "图像模型 {model} 测试成功",
        Language.ENGLISH: "Image model {model} test succeeded",
    },
}


class _Params(dict):
    def __missing__(self, key: str) -> str:
        return "-"


def render(key: str, language: Language, **params: Any) -> str:
    """Devuelve el texto localizado para `key`, con respaldo en inglés."""

    variants = MESSAGES.get(key) or MESSAGES["internal_error"]
    template = variants.get(language) or variants[Language.ENGLISH]
    return template.format_map(_Params(params))


def describe_error(exc: CardForgeError, language: Language) -> str:
    """Mensaje de usuario para un error del Core."""

    return render(exc.message_key, language, **exc.params)
