"""Fixed instruction sent to the generation model with every photo."""

GENERATION_PROMPT = """TASK 1 - Transform this image to show the same location 20 years in the future, dramatically affected by climate change.

Keep the people recognizable with their EXACT original poses, but allow them to blend and adapt to the climate-transformed surroundings:
- Same faces and identical poses/body positions as the original photo
- Keep the exact same posture, arm positions, stance, and positioning
- People should look weathered, affected by the climate conditions (dust, heat, cold, etc.)
- Clothing can appear more worn, dirty, or weather-appropriate for the harsh conditions
- Facial expressions can show the reality of living in this climate-changed world
- Let environmental effects (dust, rain, heat distortion, shadows) naturally affect the people
- People should feel integrated into the apocalyptic environment while maintaining their exact original poses

Transform the ENVIRONMENT dramatically:
- Same composition but climate-devastated surroundings
- Show dramatic climate change impacts (extreme weather, rising seas, drought, storms, flooding, wildfires, pollution)
- Make the environment look apocalyptic and devastated
- Add realistic environmental damage and extreme weather effects
- The lighting, atmosphere, and environmental conditions should affect everything in the scene

Create a cohesive scene where the people belong in this climate-changed world while remaining recognizable.

TASK 2 - Create a catchy, viral social media title for this before/after climate change comparison:
- Should be short (under 60 characters)
- Make it shocking, emotional, or thought-provoking
- Use action words and urgency
- Examples: "Your Vacation Spot in 2045", "This Is What Climate Change Looks Like", "20 Years From Now: Still Going Here?"
- Focus on the transformation and impact
- Make it shareable and attention-grabbing

Please provide your response as:
TITLE: [your catchy title here]
[generated image]"""
