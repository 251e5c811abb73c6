"""Swap flow state machine."""

from swapchat.flow.state import FlowSnapshot, SwapFlowState, SwapStep

__all__ = ["FlowSnapshot", "SwapFlowState", "SwapStep"]
