"""
Upload, mapping and preview step navigation.
"""

STEP_ORDER = ("upload", "mapping", "preview")


class WizardState:
	"""
	Tracks the current step and which steps are completed.

	A step is reachable when it is the current step, already completed,
	the first step, or directly after a completed step. Moving back to a
	step clears completion for every step after it.
	"""

	def __init__(self) -> None:
		self.current_step = STEP_ORDER[0]
		self.completed_steps: set[str] = set()

	@staticmethod
	def step_index(step: str) -> int:
		if step not in STEP_ORDER:
			raise ValueError(f"Unknown wizard step: {step}")
		return STEP_ORDER.index(step)

	def mark_complete(self, step: str) -> None:
		self.step_index(step)
		self.completed_steps.add(step)

	def is_completed(self, step: str) -> bool:
		return step in self.completed_steps

	#============================================
	def can_navigate_to(self, step: str) -> bool:
		"""
		Check whether a step is reachable from the current state.

		Args:
			step: Target step name.

		Returns:
			True when navigation is allowed.
		"""
		index = self.step_index(step)
		if step == self.current_step or step in self.completed_steps:
			return True
		if index == 0:
			return True
		return STEP_ORDER[index - 1] in self.completed_steps

	def is_locked(self, step: str) -> bool:
		return not self.can_navigate_to(step)

	#============================================
	def go_to(self, step: str) -> bool:
		"""
		Move to a step, invalidating every later step.

		Args:
			step: Target step name.

		Returns:
			True when the move happened.
		"""
		if not self.can_navigate_to(step):
			return False
		target = self.step_index(step)
		self.current_step = step
		for later in STEP_ORDER[target + 1:]:
			self.completed_steps.discard(later)
		return True

	def next_step(self) -> None:
		index = self.step_index(self.current_step)
		if index + 1 >= len(STEP_ORDER):
			return
		self.completed_steps.add(self.current_step)
		self.current_step = STEP_ORDER[index + 1]

	def previous_step(self) -> None:
		index = self.step_index(self.current_step)
		if index == 0:
			return
		self.go_to(STEP_ORDER[index - 1])

	def reset(self) -> None:
		self.current_step = STEP_ORDER[0]
		self.completed_steps.clear()
