"""
LLM Configuration - Type-safe settings for LiteLLM calls
"""
from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """
    Configuration for LLM API calls via LiteLLM

    Provides type-safe defaults and validation for the LiteLLM parameters we use.
    """

    # Model selection
    model: str = Field(description="Model to use (e.g., 'gpt-4o', 'gpt-4.1-mini')")

    # API key supplied with the request
    api_key: Optional[str] = Field(None, description="API key for the provider")

    # Core parameters
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: Optional[int] = Field(None, gt=0, description="Maximum tokens to generate")

    # Streaming
    stream: bool = Field(False, description="Enable streaming responses")

    # Structured output
    response_format: Optional[Dict[str, Any]] = Field(None, description="e.g. {'type': 'json_object'}")
    tool_choice: Optional[Literal["auto", "none", "required"]] = Field(None, description="Tool choice mode")

    # Performance
    timeout: Optional[float] = Field(None, gt=0, description="Request timeout in seconds")
    user: Optional[str] = Field(None, description="User identifier for tracking")

    class Config:
        validate_assignment = True
        extra = "allow"  # Allow additional provider-specific params

    def to_litellm_kwargs(self) -> Dict[str, Any]:
        """
        Convert to LiteLLM kwargs dictionary

        Returns:
            Dict with only non-None values for passing to acompletion()
        """
        kwargs = {"model": self.model}
        for field_name, value in self.model_dump(exclude={"model"}).items():
            if value is not None:
                kwargs[field_name] = value
        return kwargs

    @staticmethod
    def from_config(
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        stream: bool = False,
        **overrides
    ) -> "LLMConfig":
        """
        Create LLMConfig falling back to configured defaults

        Examples:
            LLMConfig.from_config(model="gpt-4o", api_key=request_key, stream=True)
            LLMConfig.from_config(model=Config.PLANNER_MODEL, response_format={"type": "json_object"})
        """
        from config import Config

        defaults = {
            "model": model or Config.DEFAULT_MODEL_ID,
            "api_key": api_key or Config.OPENAI_API_KEY,
            "stream": stream,
        }
        defaults.update(overrides)
        return LLMConfig(**defaults)
